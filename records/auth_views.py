"""
Authentication views.

Employees log in with username and password and receive both a DRF token
(used by ``records.authentication.TokenAuthentication``) and a JWT pair.
Accounts are provisioned through the admin site or the
``ensure_demo_employees`` command; there is no self-registration.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from records.exceptions import AuthorizationError, ValidationFailed
from records.serializers.auth import LoginSerializer
from records.services.access import resolve_access
from records.services.audit import log_action

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Username/password login; the role comes from the account only."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user:
        # only the username is recorded for failed attempts
        log_action(user=None, action='login', object_type='employee', object_id=None,
                   detail={'result': 'fail', 'username': username, 'ip': request.META.get('REMOTE_ADDR')})
        logger.warning("login failed", extra={'username': username})
        raise ValidationFailed('Invalid username or password.')

    log_action(user=user, action='login', object_type='employee', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    ctx = resolve_access(user)

    return Response({
        'success': True,
        'message': 'Login successful.',
        'data': {
            'token': token_obj.key,
            'jwt_access': str(refresh.access_token),
            'jwt_refresh': str(refresh),
            'employee': {
                'id': user.id,
                'username': user.username,
                'name': user.display_name,
                'role': user.role,
                'capabilities': sorted(ctx.capabilities),
            },
        },
    }, status=200)

# DRF ScopedRateThrottle uses throttle_scope on the view function
login_view.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    if resp.status_code != 200:
        return Response({'success': False, 'message': 'Token is invalid or expired.'}, status=resp.status_code)
    return Response({'success': True, 'message': '', 'data': {'jwt_access': resp.data.get('access')}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the caller's refresh tokens (one or all) and drop the API token."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError:
            raise ValidationFailed('Token is invalid or expired.')
        if str(token.get(jwt_settings.USER_ID_CLAIM)) != str(request.user.id):
            logger.warning("logout refused: refresh token of another employee",
                           extra={'employee_id': request.user.id})
            raise AuthorizationError()
        token.blacklist()
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='employee', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'success': True, 'message': 'Logged out.', 'data': {'blacklisted': count}})
