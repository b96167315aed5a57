# auth_gate.py
"""
Credential checks and session-bound token issuing.

Every login creates a UserSession keyed by the access token's jti; the
SessionJWTAuthentication class refuses tokens whose session is revoked.
"""
import logging
from datetime import datetime, timezone as dt_timezone
from typing import NamedTuple

from django.utils import timezone
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken

from .exceptions import InvalidCredentialsError, NotFoundError, PasswordChangeError
from .models import User, UserSession

logger = logging.getLogger(__name__)


class LoginResult(NamedTuple):
    access: str
    refresh: str
    user: User
    session: UserSession


def _issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    refresh['email'] = user.email
    refresh['role'] = user.role_name
    # one access token per refresh; its jti binds the session
    return refresh, refresh.access_token


def _expiry(token):
    return datetime.fromtimestamp(token['exp'], tz=dt_timezone.utc)


def login(email, password, client_ip=None, user_agent=''):
    email = (email or '').strip().lower()
    try:
        user = User.objects.select_related('role').get(email__iexact=email)
    except User.DoesNotExist:
        logger.warning(f"Login failed for {email}: user not found")
        raise NotFoundError('User not found')

    if not user.is_active or not user.check_password(password):
        logger.warning(f"Login failed for {email}: invalid credentials")
        raise InvalidCredentialsError('Invalid credentials')

    refresh, access = _issue_tokens(user)
    session = UserSession.objects.create(
        user=user,
        access_jti=access[api_settings.JTI_CLAIM],
        refresh_token=str(refresh),
        client_ip=client_ip,
        user_agent=user_agent,
        expires_at=_expiry(refresh),
    )

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])

    logger.info(f"User {user.email} logged in (session {session.id})")
    return LoginResult(str(access), str(refresh), user, session)


def logout(user, refresh_token):
    try:
        session = UserSession.objects.get(refresh_token=refresh_token, user=user, revoked=False)
    except UserSession.DoesNotExist:
        raise NotFoundError('Invalid session')

    session.revoked = True
    session.save(update_fields=['revoked'])

    try:
        RefreshToken(refresh_token).blacklist()
    except TokenError as e:
        logger.info(f"Refresh token for session {session.id} not blacklisted: {str(e)}")

    logger.info(f"User {user.email} logged out (session {session.id})")
    return session


def refresh_access(refresh_token):
    """New access token for a live session; the session is re-bound to its jti."""
    try:
        session = UserSession.objects.select_related('user').get(
            refresh_token=refresh_token,
            revoked=False,
            expires_at__gt=timezone.now(),
        )
        refresh = RefreshToken(refresh_token)
    except (UserSession.DoesNotExist, TokenError):
        raise InvalidCredentialsError('Invalid or expired refresh token')

    if refresh.get('email') != session.user.email:
        raise InvalidCredentialsError('Invalid or expired refresh token')

    access = refresh.access_token
    session.access_jti = access[api_settings.JTI_CLAIM]
    session.save(update_fields=['access_jti', 'last_activity'])
    return str(access)


def revoke_sessions(user, keep=None):
    sessions = UserSession.objects.filter(user=user, revoked=False)
    if keep is not None:
        sessions = sessions.exclude(pk=keep.pk)
    count = sessions.update(revoked=True)
    if count:
        logger.info(f"Revoked {count} session(s) of {user.email}")
    return count


def current_session(user, token):
    if token is None:
        return None
    return UserSession.objects.filter(
        user=user, access_jti=token.get(api_settings.JTI_CLAIM), revoked=False
    ).first()


def change_password(email, old_password, new_password, confirm_password, keep_session=None):
    if new_password != confirm_password:
        raise PasswordChangeError('mismatch')
    if new_password == old_password:
        raise PasswordChangeError('unchanged')

    try:
        user = User.objects.get(email__iexact=(email or '').strip())
    except User.DoesNotExist:
        raise NotFoundError('User not found')

    if not user.check_password(old_password):
        raise PasswordChangeError('incorrect_old_password')

    user.set_password(new_password)
    user.modify_on = timezone.now()
    user.save(update_fields=['password', 'modify_on'])

    # other devices have to log in again
    revoke_sessions(user, keep=keep_session)
    logger.info(f"Password changed for {user.email}")
    return user


def verify_password(user_id, password):
    """Step-up check inside a sensitive workflow; issues nothing, changes nothing."""
    try:
        user = User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('User not found')
    return user.check_password(password)
