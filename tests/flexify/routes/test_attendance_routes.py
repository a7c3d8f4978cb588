from datetime import date, datetime

import pytest

from flexify.errors import ConflictError, NotFoundError
from flexify.models.attendance import Attendance
from flexify.models.user import Role
from flexify.routes.attendance_routes import check_in_user


@pytest.fixture
def member(make_user):
    return make_user(Role.MEMBER, name='Alex Member')


def test_check_in_user_once_per_day(db, member) -> None:
    morning = datetime(2026, 3, 2, 7, 30)

    attendance = check_in_user(db, member.id, now=morning)
    assert attendance.date == date(2026, 3, 2)
    assert attendance.check_in_time == morning

    with pytest.raises(ConflictError) as exception_info:
        check_in_user(db, member.id, now=datetime(2026, 3, 2, 18, 0))
    assert exception_info.value.detail == 'User has already checked in today.'

    next_day = check_in_user(db, member.id, now=datetime(2026, 3, 3, 7, 30))
    assert next_day.date == date(2026, 3, 3)


def test_check_in_unknown_user(db) -> None:
    with pytest.raises(NotFoundError):
        check_in_user(db, 999)


def test_check_in_endpoint_and_status(client, member) -> None:
    before = client.get(f'/api/attendance/status/{member.id}')
    assert before.json()['data']['has_checked_in'] is False
    assert before.json()['data']['today_status'] is None

    response = client.post('/api/attendance/checkin', json={'user_id': member.id})
    assert response.status_code == 201
    assert response.json()['message'] == 'Alex Member checked in successfully'
    assert response.json()['data']['attendance']['user']['id'] == member.id

    after = client.get(f'/api/attendance/status/{member.id}')
    assert after.json()['data']['has_checked_in'] is True

    again = client.post('/api/attendance/checkin', json={'user_id': member.id})
    assert again.status_code == 409


def test_status_for_unknown_user(client) -> None:
    response = client.get('/api/attendance/status/999')

    assert response.status_code == 404
    assert response.json()['message'] == 'User not found.'


def test_logs_are_staff_only_and_filtered(client, db, auth_headers, member, make_user) -> None:
    trainer = make_user(Role.TRAINER)
    other = make_user(Role.MEMBER)
    db.add_all([
        Attendance(user_id=member.id, check_in_time=datetime(2026, 3, 1, 7, 0), date=date(2026, 3, 1)),
        Attendance(user_id=member.id, check_in_time=datetime(2026, 3, 2, 7, 0), date=date(2026, 3, 2)),
        Attendance(user_id=other.id, check_in_time=datetime(2026, 3, 2, 9, 0), date=date(2026, 3, 2)),
    ])
    db.commit()

    assert client.get('/api/attendance/logs', headers=auth_headers(member)).status_code == 403

    everything = client.get('/api/attendance/logs', headers=auth_headers(trainer)).json()['data']
    assert everything['total'] == 3
    assert everything['logs'][0]['user']['id'] == other.id

    filtered = client.get(
        '/api/attendance/logs',
        params={'start_date': '2026-03-02', 'end_date': '2026-03-02', 'user_id': member.id},
        headers=auth_headers(trainer),
    ).json()['data']
    assert filtered['total'] == 1
    assert filtered['logs'][0]['date'] == '2026-03-02'

    inverted = client.get(
        '/api/attendance/logs',
        params={'start_date': '2026-03-03', 'end_date': '2026-03-01'},
        headers=auth_headers(trainer),
    )
    assert inverted.status_code == 400


def test_logs_require_a_token(client) -> None:
    response = client.get('/api/attendance/logs')

    assert response.status_code == 401
    assert response.json()['code'] == 'unauthorized'
