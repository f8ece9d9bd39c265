"""
Token authentication for employees.

Kept apart from the views so that DRF can import the class from settings
without pulling in view modules.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions
from rest_framework.authtoken.models import Token


class TokenAuthentication(authentication.TokenAuthentication):
    """``Authorization: Token <key>`` authentication.

    The employee row is fetched in the same query as the token, and
    deactivated accounts are refused even when an old token is still on
    file.
    """

    keyword = 'Token'

    def authenticate_credentials(self, key):
        try:
            token = Token.objects.select_related('user').get(key=key)
        except Token.DoesNotExist:
            raise exceptions.AuthenticationFailed('Invalid token.')

        if not token.user.is_active:
            raise exceptions.AuthenticationFailed('Employee account is inactive.')

        return (token.user, token)
