from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from flexify.auth import jwt_handler
from flexify.auth.dependencies import get_current_principal, require_roles
from flexify.auth.principal import AuthenticatedPrincipal
from flexify.core import config
from flexify.models.user import Role, User


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_create_access_token_round_trips_subject_and_role() -> None:
    token = jwt_handler.create_access_token(subject='42', role='trainer')

    payload = jwt_handler.decode_access_token(token)

    assert payload['sub'] == '42'
    assert payload['role'] == 'trainer'
    assert payload['exp'] > payload['iat']


def test_get_current_principal_loads_role_from_database(db, make_user) -> None:
    user = make_user(Role.TRAINER, name='Tess Trainer')
    token = jwt_handler.create_access_token(subject=str(user.id), role='member')

    principal = get_current_principal(credentials=_credentials(token), db=db)

    assert principal == AuthenticatedPrincipal(
        user_id=user.id,
        role=Role.TRAINER,
        email=user.email,
        name='Tess Trainer',
    )


def test_get_current_principal_rejects_missing_credentials(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(credentials=None, db=db)

    assert exception_info.value.status_code == 401


def test_get_current_principal_rejects_expired_token(db, make_user) -> None:
    user = make_user(Role.MEMBER)
    expired = jwt.encode(
        {'sub': str(user.id), 'role': 'member', 'exp': datetime.now(timezone.utc) - timedelta(minutes=1)},
        config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
    )

    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(credentials=_credentials(expired), db=db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Token expired'


@pytest.mark.parametrize('subject', ['not-a-number', '0', None])
def test_get_current_principal_rejects_bad_subject(db, subject) -> None:
    payload = {'role': 'member', 'exp': datetime.now(timezone.utc) + timedelta(minutes=5)}
    if subject is not None:
        payload['sub'] = subject
    token = jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)

    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(credentials=_credentials(token), db=db)

    assert exception_info.value.detail == 'Invalid token subject'


def test_get_current_principal_rejects_unknown_user(db) -> None:
    token = jwt_handler.create_access_token(subject='999', role='member')

    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(credentials=_credentials(token), db=db)

    assert exception_info.value.detail == 'Invalid token. User not found.'


def test_get_current_principal_rejects_unknown_role(db) -> None:
    user = User(name='Odd Role', email='odd@flexify.test', role='janitor')
    db.add(user)
    db.commit()
    token = jwt_handler.create_access_token(subject=str(user.id), role='janitor')

    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(credentials=_credentials(token), db=db)

    assert exception_info.value.status_code == 403


def test_require_roles_admits_listed_roles_only() -> None:
    staff_only = require_roles(Role.ADMIN, Role.TRAINER)
    trainer = AuthenticatedPrincipal(user_id=1, role=Role.TRAINER, email='t@flexify.test', name='T')
    member = AuthenticatedPrincipal(user_id=2, role=Role.MEMBER, email='m@flexify.test', name='M')

    assert staff_only(principal=trainer) is trainer
    with pytest.raises(HTTPException) as exception_info:
        staff_only(principal=member)
    assert exception_info.value.status_code == 403


def test_me_returns_profile_and_role(client, auth_headers, make_user) -> None:
    admin = make_user(Role.ADMIN, name='Ada Admin')

    response = client.get('/api/auth/me', headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()['data'] == {
        'user': {'id': admin.id, 'name': 'Ada Admin', 'email': admin.email, 'profile_pic': ''},
        'role': 'admin',
    }


def test_update_me_changes_name_and_email(client, auth_headers, make_user) -> None:
    member = make_user(Role.MEMBER, name='Alex Member')

    response = client.patch(
        '/api/auth/me',
        json={'name': '  Alex   Renamed ', 'email': ' Alex.Renamed@Flexify.test '},
        headers=auth_headers(member),
    )

    assert response.status_code == 200
    body = response.json()
    assert body['message'] == 'Profile updated successfully'
    assert body['data']['user']['name'] == 'Alex Renamed'
    assert body['data']['user']['email'] == 'alex.renamed@flexify.test'
    assert body['data']['role'] == 'member'


def test_update_me_rejects_empty_and_invalid_payloads(client, auth_headers, make_user) -> None:
    member = make_user(Role.MEMBER)

    empty = client.patch('/api/auth/me', json={}, headers=auth_headers(member))
    bad_email = client.patch('/api/auth/me', json={'email': 'not-an-email'}, headers=auth_headers(member))
    short_name = client.patch('/api/auth/me', json={'name': 'A'}, headers=auth_headers(member))

    assert empty.status_code == 400
    assert empty.json()['message'] == 'No valid fields provided for update.'
    assert bad_email.status_code == 400
    assert bad_email.json()['message'] == 'Please provide a valid email.'
    assert short_name.status_code == 400
    assert short_name.json()['message'] == 'Name must be at least 2 characters.'


def test_update_me_rejects_email_of_another_user(client, auth_headers, make_user) -> None:
    member = make_user(Role.MEMBER)
    other = make_user(Role.MEMBER)

    response = client.patch('/api/auth/me', json={'email': other.email}, headers=auth_headers(member))

    assert response.status_code == 409
    assert response.json()['message'] == 'Email is already in use.'


def test_get_current_principal_rejects_out_of_range_subject(db) -> None:
    token = jwt_handler.create_access_token(subject=str(2**63), role='member')

    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(credentials=_credentials(token), db=db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token subject'
