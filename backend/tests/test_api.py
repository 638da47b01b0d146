"""HTTP surface: status codes, reason codes and the debug id."""
import json
import logging
from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token

from qrattend import db
from qrattend.models.join_request import JoinRequest
from qrattend.models.session import SessionStatus, TrainingSession
from qrattend.models.user import UserRole
from qrattend.services.scan_service import ScanService

from conftest import at, attendance_rows

MARK = '/api/functions/mark-attendance'
PROCESS = '/api/functions/process-attendance-request'
SET = '/api/functions/set-attendance'

def body(response):
    return json.loads(response.data)

def test_health_check(client):
    """Test health endpoint."""
    response = client.get('/health')
    assert response.status_code == 200
    data = body(response)
    assert data['status'] == 'healthy'
    assert data['rate_limit_storage'] == 'memory'

def test_unknown_route_is_json(client):
    """Test unknown routes answer with JSON."""
    response = client.get('/api/nope')
    assert response.status_code == 404
    assert body(response)['error'] is True

def test_login_success(client, trainee):
    """Test successful login."""
    response = client.post('/api/auth/login', json={
        'email': trainee.email,
        'password': 'password123'
    })

    assert response.status_code == 200
    data = body(response)
    assert data['error'] is False
    assert 'access_token' in data['data']
    assert data['data']['user']['email'] == trainee.email
    assert 'password_hash' not in data['data']['user']

def test_login_wrong_password(client, trainee):
    """Test login with a wrong password."""
    response = client.post('/api/auth/login', json={
        'email': trainee.email,
        'password': 'not-the-password'
    })
    assert response.status_code == 401

def test_login_requires_fields(client):
    """Test login without credentials."""
    assert client.post('/api/auth/login', json={}).status_code == 400

def test_me(client, trainee, auth_headers):
    """Test current user endpoint."""
    response = client.get('/api/auth/me', headers=auth_headers(trainee))
    assert response.status_code == 200
    assert body(response)['data']['role'] == 'trainee'

def test_mark_attendance(client, clock, active_session, trainee, auth_headers):
    """Test QR scan over HTTP records audit fields."""
    clock.set(at(9, 20))

    response = client.post(MARK, json={
        'token': 'live-token',
        'sessionId': active_session.id
    }, headers={**auth_headers(trainee), 'User-Agent': 'scanner/1.0', 'X-Forwarded-For': '203.0.113.9, 10.0.0.1'})

    assert response.status_code == 200
    data = body(response)
    assert data['success'] is True
    assert data['status'] == 'present'
    assert data['attendanceType'] == 'late'
    assert data['debugId']

    row = attendance_rows(active_session.id)[0]
    assert row.ip_address == '203.0.113.9'
    assert row.user_agent == 'scanner/1.0'

def test_mark_attendance_accepts_aliases(client, active_session, trainee, auth_headers):
    """Test alternative field names for token and session."""
    response = client.post(MARK, json={
        'qrToken': 'live-token',
        'session': str(active_session.id)
    }, headers=auth_headers(trainee))
    assert response.status_code == 200

@pytest.mark.parametrize('payload', [
    {},
    {'token': 'live-token'},
    {'sessionId': 1},
    {'token': '', 'sessionId': 1},
    {'token': 'live-token', 'sessionId': 'abc'},
])
def test_invalid_payload_is_checked_before_auth(client, payload):
    """Test malformed bodies fail before the credential check."""
    response = client.post(MARK, json=payload)
    assert response.status_code == 400
    assert body(response)['reason'] == 'INVALID_PAYLOAD'

def test_non_json_body(client):
    """Test non-JSON body."""
    response = client.post(MARK, data='token=x', content_type='text/plain')
    assert body(response)['reason'] == 'INVALID_PAYLOAD'

def test_missing_credential(client, active_session):
    """Test scan without a token."""
    response = client.post(MARK, json={'token': 'live-token', 'sessionId': active_session.id})
    assert response.status_code == 401
    assert body(response)['reason'] == 'NOT_AUTHENTICATED'

@pytest.mark.parametrize('header', ['Bearer not-a-jwt', 'Basic dXNlcjpwYXNz'])
def test_bad_credential(client, active_session, header):
    """Test scan with a malformed token."""
    response = client.post(MARK, json={'token': 'live-token', 'sessionId': active_session.id},
                           headers={'Authorization': header})
    assert response.status_code == 401
    assert body(response)['reason'] == 'INVALID_SESSION'

def test_expired_credential(client, active_session, trainee):
    """Test scan with an expired token."""
    token = create_access_token(identity=str(trainee.id), expires_delta=timedelta(seconds=-5))
    response = client.post(MARK, json={'token': 'live-token', 'sessionId': active_session.id},
                           headers={'Authorization': f'Bearer {token}'})
    assert body(response)['reason'] == 'INVALID_SESSION'

def test_deactivated_user(client, active_session, make_user, auth_headers):
    """Test deactivated users are refused."""
    user = make_user(is_active=False)
    response = client.post(MARK, json={'token': 'live-token', 'sessionId': active_session.id},
                           headers=auth_headers(user))
    assert body(response)['reason'] == 'INVALID_SESSION'

def test_missing_setting_is_server_config_error(app, client, active_session, trainee, auth_headers):
    """Test missing settings report a config error."""
    headers = auth_headers(trainee)
    app.config['JWT_SECRET_KEY'] = None

    response = client.post(MARK, json={'token': 'live-token', 'sessionId': active_session.id},
                           headers=headers)

    assert response.status_code == 500
    assert body(response)['reason'] == 'SERVER_CONFIG_ERROR'

def test_unexpected_error_is_internal_error(client, monkeypatch, active_session, trainee, auth_headers):
    """Test unexpected exceptions become INTERNAL_ERROR."""
    def boom(*args, **kwargs):
        raise RuntimeError('database went away')
    monkeypatch.setattr(ScanService, 'mark_attendance', boom)

    response = client.post(MARK, json={'token': 'live-token', 'sessionId': active_session.id},
                           headers=auth_headers(trainee))

    assert response.status_code == 500
    data = body(response)
    assert data['reason'] == 'INTERNAL_ERROR'
    assert 'database went away' not in data['message']

def test_debug_id_is_logged(app, client, caplog, active_session, trainee, auth_headers):
    """Test the response debug id appears in the log."""
    caplog.set_level(logging.INFO, logger=app.logger.name)

    response = client.post(MARK, json={'token': 'wrong', 'sessionId': active_session.id},
                           headers=auth_headers(trainee))

    data = body(response)
    assert data['reason'] == 'QR_TOKEN_MISMATCH'
    assert data['debugId'] in caplog.text

@pytest.mark.parametrize('failure, status_code, reason', [
    ('unknown_session', 404, 'SESSION_NOT_FOUND'),
    ('not_enrolled', 403, 'NOT_ENROLLED'),
    ('scheduled', 400, 'SESSION_INACTIVE'),
])
def test_scan_failure_status_codes(client, make_session, make_user, auth_headers,
                                   failure, status_code, reason):
    """Test scan failures map to HTTP status codes."""
    trainee = make_user()
    if failure == 'unknown_session':
        session_id = 9999
    elif failure == 'not_enrolled':
        session_id = make_session(participants=[]).id
    else:
        session_id = make_session(status=SessionStatus.SCHEDULED, participants=[trainee]).id

    response = client.post(MARK, json={'token': 'live-token', 'sessionId': session_id},
                           headers=auth_headers(trainee))

    assert response.status_code == status_code
    assert body(response)['reason'] == reason

def test_join_request_round_trip(client, clock, active_session, trainee, trainer, auth_headers):
    """Test request, list and approve over HTTP."""
    clock.set(at(9, 12))
    created = client.post('/api/join-requests', json={'sessionId': active_session.id},
                          headers=auth_headers(trainee))
    assert created.status_code == 201
    request_id = body(created)['request']['id']

    duplicate = client.post('/api/join-requests', json={'sessionId': active_session.id},
                            headers=auth_headers(trainee))
    assert duplicate.status_code == 409
    assert body(duplicate)['reason'] == 'DUPLICATE_REQUEST'

    listing = client.get(f'/api/join-requests?sessionId={active_session.id}',
                         headers=auth_headers(trainer))
    assert [r['id'] for r in body(listing)['requests']] == [request_id]

    clock.set(at(10, 0))
    processed = client.post(PROCESS, json={'requestId': request_id, 'action': 'approve'},
                            headers=auth_headers(trainer))
    assert processed.status_code == 200
    assert body(processed)['attendanceType'] == 'on_time'

@pytest.mark.parametrize('payload', [
    {'action': 'approve'},
    {'requestId': 1, 'action': 'maybe'},
    {'requestId': -3, 'action': 'approve'},
])
def test_process_payload_validation(client, trainer, auth_headers, payload):
    """Test malformed process payloads."""
    response = client.post(PROCESS, json=payload, headers=auth_headers(trainer))
    assert response.status_code == 400
    assert body(response)['reason'] == 'INVALID_PAYLOAD'

def test_process_by_trainee_is_forbidden(client, active_session, trainees, auth_headers):
    """Test trainees cannot process requests."""
    join_request = JoinRequest(session_id=active_session.id, user_id=trainees[0].id)
    join_request.save()

    response = client.post(PROCESS, json={'requestId': join_request.id, 'action': 'approve'},
                           headers=auth_headers(trainees[1]))

    assert response.status_code == 403
    assert body(response)['reason'] == 'FORBIDDEN'

def test_process_unknown_request(client, trainer, auth_headers):
    """Test processing a missing request."""
    response = client.post(PROCESS, json={'requestId': 404, 'action': 'reject'},
                           headers=auth_headers(trainer))
    assert response.status_code == 404
    assert body(response)['reason'] == 'REQUEST_NOT_FOUND'

def test_withdraw_join_request(client, active_session, trainee, auth_headers):
    """Test withdrawing a request over HTTP."""
    join_request = JoinRequest(session_id=active_session.id, user_id=trainee.id)
    join_request.save()
    request_id = join_request.id

    response = client.delete(f'/api/join-requests/{request_id}', headers=auth_headers(trainee))

    assert response.status_code == 200
    db.session.expire_all()
    assert db.session.get(JoinRequest, request_id) is None

def test_set_attendance(client, active_session, trainee, trainer, auth_headers):
    """Test manual override over HTTP."""
    response = client.post(SET, json={
        'sessionId': active_session.id, 'userId': trainee.id, 'status': 'partial'
    }, headers=auth_headers(trainer))

    assert response.status_code == 200
    data = body(response)
    assert data['status'] == 'present'
    assert data['attendanceType'] == 'partial'

def test_set_attendance_rejects_unknown_status(client, active_session, trainee, trainer, auth_headers):
    """Test override with an unknown status."""
    response = client.post(SET, json={
        'sessionId': active_session.id, 'userId': trainee.id, 'status': 'excused'
    }, headers=auth_headers(trainer))
    assert response.status_code == 400
    assert body(response)['reason'] == 'INVALID_PAYLOAD'

def test_set_attendance_on_completed_session(client, make_session, trainee, trainer, auth_headers):
    """Test override on a completed session."""
    session = make_session(status=SessionStatus.COMPLETED, participants=[trainee])
    response = client.post(SET, json={
        'sessionId': session.id, 'userId': trainee.id, 'status': 'present'
    }, headers=auth_headers(trainer))
    assert response.status_code == 400
    assert body(response)['reason'] == 'SESSION_NOT_ACTIVE'

def test_session_lifecycle_over_http(client, make_session, trainees, trainer, auth_headers):
    """Test start, QR, refresh, complete and cancel over HTTP."""
    session = make_session(status=SessionStatus.SCHEDULED, participants=trainees)
    session_id = session.id
    headers = auth_headers(trainer)

    started = client.post(f'/api/sessions/{session_id}/start', headers=headers)
    assert started.status_code == 200
    assert body(started)['status'] == 'active'

    qr = client.get(f'/api/sessions/{session_id}/qr', headers=headers)
    assert qr.status_code == 200
    assert body(qr)['qrImage'].startswith('data:image/png;base64,')

    refreshed = client.post(f'/api/sessions/{session_id}/refresh-qr', headers=headers)
    assert refreshed.status_code == 200

    completed = client.post(f'/api/sessions/{session_id}/complete', headers=headers)
    assert completed.status_code == 200
    assert body(completed)['absentCount'] == len(trainees)

    cancelled = client.post(f'/api/sessions/{session_id}/cancel', headers=headers)
    assert cancelled.status_code == 409
    assert body(cancelled)['reason'] == 'INVALID_TRANSITION'

    db.session.expire_all()
    assert db.session.get(TrainingSession, session_id).status == SessionStatus.COMPLETED

def test_unknown_session_lifecycle(client, trainer, auth_headers):
    """Test lifecycle calls on a missing session."""
    response = client.post('/api/sessions/8080/start', headers=auth_headers(trainer))
    assert response.status_code == 404
    assert body(response)['reason'] == 'SESSION_NOT_FOUND'

def test_auto_complete_requires_admin(client, make_user, auth_headers):
    """Test auto-complete is admin only."""
    trainer = make_user(UserRole.TRAINER)
    admin = make_user(UserRole.ADMIN)

    assert client.post('/api/sessions/auto-complete', headers=auth_headers(trainer)).status_code == 403
    response = client.post('/api/sessions/auto-complete', headers=auth_headers(admin))
    assert response.status_code == 200
    assert body(response)['completedSessions'] == []

def test_schedule_and_enroll_over_http(client, clock, trainer, make_user, auth_headers):
    """Test a training, session and enrollment can be set up over HTTP."""
    trainee = make_user()
    assigned = make_user()
    headers = auth_headers(trainer)

    training = client.post('/api/trainings', json={'title': 'First Aid'}, headers=headers)
    assert training.status_code == 201
    training_id = body(training)['training']['id']

    created = client.post('/api/sessions', json={
        'trainingId': training_id,
        'title': 'First Aid - Morning',
        'scheduledDate': '2024-01-01',
        'startTime': '09:00',
        'endTime': '12:00',
        'lateThresholdMinutes': 10,
        'partialThresholdMinutes': 25
    }, headers=headers)
    assert created.status_code == 201
    session = body(created)['session']
    assert session['status'] == 'scheduled'
    assert session['trainer_id'] == trainer.id
    assert session['late_threshold_minutes'] == 10

    participants = client.post(f'/api/sessions/{session["id"]}/participants',
                               json={'userIds': [assigned.id]}, headers=headers)
    assert participants.status_code == 200
    assert body(participants)['enrolledUserIds'] == [assigned.id]

    enrolled = client.post(f'/api/sessions/{session["id"]}/enroll', headers=auth_headers(trainee))
    assert enrolled.status_code == 201

    started = client.post(f'/api/sessions/{session["id"]}/start', headers=headers)
    clock.set(at(9, 12))
    scanned = client.post(MARK, json={
        'token': body(started)['session']['qr_token'], 'sessionId': session['id']
    }, headers=auth_headers(trainee))
    assert body(scanned)['attendanceType'] == 'late'

@pytest.mark.parametrize('payload', [
    {'title': 'Day 1', 'scheduledDate': '2024-01-02', 'startTime': '09:00', 'endTime': '12:00'},
    {'trainingId': 1, 'title': 'x', 'scheduledDate': '2024-01-02', 'startTime': '09:00', 'endTime': '12:00'},
    {'trainingId': 1, 'title': 'Day 1', 'scheduledDate': '02/01/2024', 'startTime': '09:00', 'endTime': '12:00'},
    {'trainingId': 1, 'title': 'Day 1', 'scheduledDate': '2024-01-02', 'startTime': '12:00', 'endTime': '09:00'},
    {'trainingId': 1, 'title': 'Day 1', 'scheduledDate': '2024-01-02', 'startTime': '09:00', 'endTime': '12:00',
     'lateThresholdMinutes': -5},
])
def test_create_session_payload_validation(client, trainer, auth_headers, payload):
    """Test malformed session payloads are rejected."""
    response = client.post('/api/sessions', json=payload, headers=auth_headers(trainer))
    assert response.status_code == 400
    assert body(response)['reason'] == 'INVALID_PAYLOAD'

@pytest.mark.parametrize('payload', [{}, {'userIds': []}, {'userIds': 'all'}, {'userIds': [1, 'two']}])
def test_assign_participants_payload_validation(client, active_session, trainer, auth_headers, payload):
    """Test participant lists must be non-empty lists of ids."""
    response = client.post(f'/api/sessions/{active_session.id}/participants',
                           json=payload, headers=auth_headers(trainer))
    assert response.status_code == 400
    assert body(response)['reason'] == 'INVALID_PAYLOAD'

def test_trainee_cannot_schedule_sessions(client, trainee, auth_headers):
    """Test trainees get 403 from session creation."""
    training = client.post('/api/trainings', json={'title': 'First Aid'}, headers=auth_headers(trainee))
    assert training.status_code == 403
    assert body(training)['reason'] == 'FORBIDDEN'

def test_self_enroll_requires_login(client, active_session):
    """Test enrolling without a token."""
    response = client.post(f'/api/sessions/{active_session.id}/enroll')
    assert response.status_code == 401
    assert body(response)['reason'] == 'NOT_AUTHENTICATED'
