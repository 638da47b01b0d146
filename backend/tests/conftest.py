"""Shared fixtures: app on in-memory SQLite, a frozen clock, users and sessions."""
from datetime import date, datetime, time, timedelta, timezone

import pytest
from flask_jwt_extended import create_access_token

from qrattend import create_app, db
from qrattend.models import (
    Attendance, SessionParticipant, SessionStatus, Training, TrainingSession,
    User, UserRole
)
from qrattend.utils.clock import FixedClock

SESSION_DAY = date(2024, 1, 1)
SESSION_START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

def at(hour: int, minute: int = 0, second: int = 0) -> datetime:
    """Instant on the session day, UTC."""
    return datetime(2024, 1, 1, hour, minute, second, tzinfo=timezone.utc)

@pytest.fixture
def clock():
    return FixedClock(SESSION_START)

@pytest.fixture
def app(clock):
    """Create test app."""
    app = create_app('testing')
    app.config['ATTENDANCE_CLOCK'] = clock
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()

@pytest.fixture
def make_user(app):
    counter = {'n': 0}

    def _make(role=UserRole.TRAINEE, email=None, password='password123', is_active=True):
        counter['n'] += 1
        user = User(
            email=email or f'{role.value}{counter["n"]}@example.com',
            full_name=f'{role.value.title()} {counter["n"]}',
            role=role,
            is_active=is_active
        )
        user.set_password(password)
        return user.save()
    return _make

@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, email='admin@example.com')

@pytest.fixture
def trainer(make_user):
    return make_user(UserRole.TRAINER, email='trainer@example.com')

@pytest.fixture
def other_trainer(make_user):
    return make_user(UserRole.TRAINER, email='other.trainer@example.com')

@pytest.fixture
def trainees(make_user):
    return [make_user(UserRole.TRAINEE) for _ in range(4)]

@pytest.fixture
def trainee(trainees):
    return trainees[0]

@pytest.fixture
def make_session(app, trainer):
    training = Training(title='Safety Induction').save()

    def _make(status=SessionStatus.ACTIVE, participants=(), owner=None,
              qr_token='live-token', qr_expires_at=None, actual_start_time=None,
              late=15, partial=30, end=time(12, 0)):
        session = TrainingSession(
            training_id=training.id,
            trainer_id=(owner or trainer).id,
            title='Induction Day 1',
            scheduled_date=SESSION_DAY,
            start_time=time(9, 0),
            end_time=end,
            status=status,
            late_threshold_minutes=late,
            partial_threshold_minutes=partial,
            actual_start_time=actual_start_time
        )
        if status == SessionStatus.ACTIVE:
            session.qr_token = qr_token
            session.qr_expires_at = qr_expires_at or SESSION_START + timedelta(hours=4)
        session.save()
        for user in participants:
            db.session.add(SessionParticipant(session_id=session.id, user_id=user.id))
        db.session.commit()
        return session
    return _make

@pytest.fixture
def active_session(make_session, trainees):
    return make_session(participants=trainees)

@pytest.fixture
def token_for(app):
    def _token(user):
        return create_access_token(identity=str(user.id))
    return _token

@pytest.fixture
def auth_headers(token_for):
    def _headers(user):
        return {'Authorization': f'Bearer {token_for(user)}'}
    return _headers

def attendance_rows(session_id):
    db.session.expire_all()
    return Attendance.query.filter_by(session_id=session_id).order_by(Attendance.user_id).all()
