"""
Domain error taxonomy and the unified API exception handler.

Services raise the errors below; DRF renders them through
:func:`api_exception_handler` as ``{"ok": false, "error": {...}}`` with
a stable ``code`` so clients can tell "fix your input" apart from
"someone else just took that bed".
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class DomainValidationError(APIException):
    """A required field is missing or malformed."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'validation_error'


class NotFoundError(APIException):
    """The id does not exist, or is not addressable in its current state."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class InvalidStateError(APIException):
    """The entity exists but its lifecycle state forbids the transition."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Invalid state for this operation.'
    default_code = 'invalid_state'


class ConflictError(APIException):
    """The operation is blocked by a live reference or a duplicate."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict.'
    default_code = 'conflict'


DOMAIN_ERRORS = (DomainValidationError, NotFoundError, InvalidStateError, ConflictError)


def _error_code(exc) -> str:
    if isinstance(exc, DOMAIN_ERRORS):
        return exc.default_code
    if isinstance(exc, DRFValidationError):
        return 'validation_error'
    if isinstance(exc, Http404):
        return 'not_found'
    if isinstance(exc, DjangoPermissionDenied):
        return 'permission_denied'
    return getattr(exc, 'default_code', None) or 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', context.get('view'))
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    headers = {k: resp[k] for k in ('WWW-Authenticate', 'Retry-After') if resp.has_header(k)}
    return Response({'ok': False, 'error': {'code': _error_code(exc), 'message': detail}}, status=resp.status_code, headers=headers)
