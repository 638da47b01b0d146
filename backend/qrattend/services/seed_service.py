# backend/qrattend/services/seed_service.py
"""Database seeding service for demo data."""
from datetime import date, time

from qrattend import db
from qrattend.models.participant import SessionParticipant
from qrattend.models.session import SessionStatus, TrainingSession
from qrattend.models.training import Training
from qrattend.models.user import User, UserRole

DEMO_PASSWORD = 'demo123456'

class SeedService:
    """Service to seed database with demo data."""

    @staticmethod
    def seed_all(session_date: date = None) -> TrainingSession:
        """Seed a trainer, four trainees and one scheduled session."""
        trainer = SeedService.seed_user('trainer@demo.local', 'Demo Trainer', UserRole.TRAINER)
        trainees = [
            SeedService.seed_user(f'trainee{i}@demo.local', f'Demo Trainee {i}', UserRole.TRAINEE)
            for i in range(1, 5)
        ]
        return SeedService.seed_session(trainer, trainees, session_date or date.today())

    @staticmethod
    def seed_user(email: str, full_name: str, role: UserRole) -> User:
        user = User.query.filter_by(email=email).first()
        if user:
            return user

        user = User(email=email, full_name=full_name, role=role)
        user.set_password(DEMO_PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user

    @staticmethod
    def seed_session(trainer: User, trainees, session_date: date) -> TrainingSession:
        training = Training.query.filter_by(title='Onboarding').first()
        if not training:
            training = Training(title='Onboarding', description='New starter onboarding programme')
            db.session.add(training)
            db.session.commit()

        session = TrainingSession(
            training_id=training.id,
            trainer_id=trainer.id,
            title='Onboarding - Day 1',
            location='Room 101',
            scheduled_date=session_date,
            start_time=time(9, 0),
            end_time=time(12, 0),
            status=SessionStatus.SCHEDULED
        )
        db.session.add(session)
        db.session.flush()

        for trainee in trainees:
            db.session.add(SessionParticipant(session_id=session.id, user_id=trainee.id))

        db.session.commit()
        return session
