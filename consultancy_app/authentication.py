# authentication.py
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.settings import api_settings

from .models import UserSession


class SessionJWTAuthentication(JWTAuthentication):
    """
    JWT authentication bound to a live UserSession.

    A token is accepted only while its session is not revoked and its email
    claim still matches the account, so a changed email invalidates every
    token issued before the change.
    """

    def get_user(self, validated_token):
        user = super().get_user(validated_token)

        if validated_token.get('email') != user.email:
            raise AuthenticationFailed(
                {'detail': 'Session identity is no longer valid, please log in again', 'code': 'stale_identity'},
                code='stale_identity',
            )

        jti = validated_token.get(api_settings.JTI_CLAIM)
        if not UserSession.objects.filter(user=user, access_jti=jti, revoked=False).exists():
            raise AuthenticationFailed(
                {'detail': 'Session has been revoked', 'code': 'session_revoked'},
                code='session_revoked',
            )

        return user
