"""
Authentication classes for the inpatient API.

Users are a projection of the identity service, which issues both the
opaque ``Token`` keys and the ``Bearer`` JWTs.  Either credential is
only accepted for an active user holding one of the known roles, so a
half-synced projection row cannot reach the role-gated views.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions
from rest_framework_simplejwt.authentication import JWTAuthentication

from .models import User

KNOWN_ROLES = {value for value, _ in User.ROLE_CHOICES}


def ensure_known_role(user):
    if user.role not in KNOWN_ROLES:
        raise exceptions.AuthenticationFailed('User has no inpatient role.', code='unknown_role')
    return user


class RoleTokenAuthentication(authentication.TokenAuthentication):
    """``Authorization: Token <key>`` for users with a known role."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        return ensure_known_role(user), token


class RoleJWTAuthentication(JWTAuthentication):
    """``Authorization: Bearer <jwt>`` for users with a known role."""

    def get_user(self, validated_token):
        return ensure_known_role(super().get_user(validated_token))
