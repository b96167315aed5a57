import pytest
from rest_framework.test import APIClient

from consultancy_app import auth_gate
from consultancy_app.exceptions import InvalidCredentialsError, NotFoundError, PasswordChangeError
from consultancy_app.models import AuditLog, RoleName, UserSession

from .conftest import PASSWORD, client_for

pytestmark = pytest.mark.django_db


def test_login_unknown_user_is_not_found(client):
    response = client.post('/api/auth/login/', {'email': 'ghost@example.com', 'password': 'x'},
                           content_type='application/json')
    assert response.status_code == 404
    assert response.json()['error'] == 'User not found'


def test_login_wrong_password_is_unauthorized(client, registered):
    response = client.post('/api/auth/login/', {'email': registered.email, 'password': 'wrong'},
                           content_type='application/json')
    assert response.status_code == 401
    assert response.json()['error'] == 'Invalid credentials'
    assert AuditLog.objects.filter(event_type='USER_LOGIN', new_values__status='failed').exists()


def test_login_inactive_user_is_unauthorized(registered):
    registered.is_active = False
    registered.save()
    with pytest.raises(InvalidCredentialsError):
        auth_gate.login(registered.email, PASSWORD)


def test_login_issues_session_bound_tokens(client, registered):
    response = client.post('/api/auth/login/', {'email': registered.email, 'password': PASSWORD},
                           content_type='application/json')
    assert response.status_code == 200

    body = response.json()
    assert body['user']['role_name'] == RoleName.REGISTERED
    session = UserSession.objects.get(pk=body['session_id'])
    assert session.refresh_token == body['refresh_token']
    assert not session.revoked

    api = APIClient()
    api.credentials(HTTP_AUTHORIZATION=f"Bearer {body['token']}")
    assert api.get('/api/auth/validate-token/').status_code == 200


def test_logout_revokes_session(clerk_client):
    result = clerk_client.login_result
    response = clerk_client.post('/api/auth/logout/', {'refresh_token': result.refresh}, format='json')
    assert response.status_code == 200

    result.session.refresh_from_db()
    assert result.session.revoked
    assert clerk_client.get('/api/auth/validate-token/').status_code == 401


def test_refresh_token_rebinds_session(registered):
    result = auth_gate.login(registered.email, PASSWORD)
    access = auth_gate.refresh_access(result.refresh)

    api = APIClient()
    api.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
    assert api.get('/api/auth/validate-token/').status_code == 200


def test_refresh_of_revoked_session_fails(registered):
    result = auth_gate.login(registered.email, PASSWORD)
    auth_gate.revoke_sessions(registered)
    with pytest.raises(InvalidCredentialsError):
        auth_gate.refresh_access(result.refresh)


@pytest.mark.parametrize('old, new, confirm, reason', [
    (PASSWORD, 'brand-new-1', 'brand-new-2', 'mismatch'),
    (PASSWORD, PASSWORD, PASSWORD, 'unchanged'),
    ('not-my-password', 'brand-new-1', 'brand-new-1', 'incorrect_old_password'),
])
def test_change_password_reasons(registered, old, new, confirm, reason):
    with pytest.raises(PasswordChangeError) as excinfo:
        auth_gate.change_password(registered.email, old, new, confirm)
    assert excinfo.value.reason == reason


def test_change_password_unknown_user():
    with pytest.raises(NotFoundError):
        auth_gate.change_password('ghost@example.com', 'a-secret', 'b-secret', 'b-secret')


def test_change_password_keeps_current_session_only(clerk_client, registered):
    other_device = auth_gate.login(registered.email, PASSWORD)

    response = clerk_client.post('/api/auth/change-password/', {
        'old_password': PASSWORD, 'new_password': 'brand-new-1', 'confirm_password': 'brand-new-1',
    }, format='json')
    assert response.status_code == 200

    registered.refresh_from_db()
    assert registered.check_password('brand-new-1')
    other_device.session.refresh_from_db()
    assert other_device.session.revoked
    assert clerk_client.get('/api/auth/validate-token/').status_code == 200


def test_change_password_endpoint_reports_reason(clerk_client):
    response = clerk_client.post('/api/auth/change-password/', {
        'old_password': PASSWORD, 'new_password': 'brand-new-1', 'confirm_password': 'other-one',
    }, format='json')
    assert response.status_code == 400
    assert response.json()['reason'] == 'mismatch'


def test_verify_password(clerk_client, registered):
    url = '/api/auth/verify-password/'
    assert clerk_client.post(url, {'user_id': registered.id, 'password': PASSWORD},
                             format='json').status_code == 200
    assert clerk_client.post(url, {'user_id': registered.id, 'password': 'nope'},
                             format='json').status_code == 401
    assert clerk_client.post(url, {'user_id': 999999, 'password': PASSWORD},
                             format='json').status_code == 404
    assert clerk_client.post(url, {'password': PASSWORD}, format='json').status_code == 400


def test_own_email_change_invalidates_tokens(admin_client, administrator):
    response = admin_client.patch(f'/api/users/{administrator.id}/',
                                  {'email': 'new-root@example.com'}, format='json')
    assert response.status_code == 200
    assert response.json()['force_logout'] is True

    assert admin_client.get('/api/auth/validate-token/').status_code == 401
    assert auth_gate.login('new-root@example.com', PASSWORD).user == administrator


def test_stale_email_claim_is_rejected(registered):
    client = client_for(registered)
    # changed behind the token's back, sessions left alive
    registered.email = 'renamed@example.com'
    registered.save()

    response = client.get('/api/auth/validate-token/')
    assert response.status_code == 401
    assert response.json()['code'] == 'stale_identity'


def test_user_cannot_delete_self(admin_client, administrator):
    response = admin_client.delete(f'/api/users/{administrator.id}/')
    assert response.status_code == 400


def test_duplicate_user_email_conflicts(admin_client, registered, roles):
    response = admin_client.post('/api/users/', {
        'name': 'Twin', 'email': registered.email.upper(), 'password': 'twin-pass-1',
        'role': roles[RoleName.REGISTERED].id,
    }, format='json')
    assert response.status_code == 409
