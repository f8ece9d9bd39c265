"""
Error types raised by the services and the DRF exception hook that turns
every failure into the ``{"success": false, "message": ...}`` envelope.
"""
import logging

from django.db import DatabaseError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class RecordsError(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be processed.'

    def __init__(self, message=None):
        super().__init__(detail=message or self.default_detail)
        self.message = str(self.detail)


class ValidationFailed(RecordsError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'


class AuthorizationError(RecordsError):
    """Raised when the caller lacks a capability or does not own the record.

    The message is deliberately the same for every case so that callers
    cannot tell which check failed.
    """
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'

    def __init__(self, message=None):
        super().__init__(None)


class NotFound(RecordsError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Record not found.'


class StateError(RecordsError):
    """A transition was requested from a status that does not allow it."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The record is not in a state that allows this action.'

    def __init__(self, message=None, current_status=None):
        super().__init__(message)
        self.current_status = current_status


class PersistenceError(RecordsError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'A temporary error occurred. Please try again.'

    def __init__(self, message=None):
        super().__init__(None)


def _first_message(data):
    if isinstance(data, dict):
        if 'detail' in data:
            return _first_message(data['detail'])
        for field, value in data.items():
            msg = _first_message(value)
            if field == 'non_field_errors':
                return msg
            return f"{field}: {msg}"
        return ''
    if isinstance(data, (list, tuple)):
        return _first_message(data[0]) if data else ''
    return str(data)


def api_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        logger.exception("database error in %s", context.get('view').__class__.__name__)
        exc = PersistenceError()

    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception("unhandled error", exc_info=exc)
        return Response({'success': False, 'message': 'An unexpected error occurred.'}, status=500)

    if isinstance(exc, RecordsError):
        body = {'success': False, 'message': exc.message}
        if isinstance(exc, StateError) and exc.current_status is not None:
            body['current_status'] = exc.current_status
    else:
        # DRF's own validation/auth/throttle errors
        body = {'success': False, 'message': _first_message(resp.data)}
    return Response(body, status=resp.status_code, headers=_auth_headers(resp))


def _auth_headers(resp):
    headers = {}
    for name in ('WWW-Authenticate', 'Retry-After'):
        if resp.has_header(name):
            headers[name] = resp[name]
    return headers
