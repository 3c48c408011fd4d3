"""
Domain errors and the unified API exception handler.

Every error leaves the API as ``{ok: false, code, message, fieldErrors?}``
plus any context the error carries (e.g. ``current``/``requested`` for an
invalid status transition).
"""
import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class DomainError(exceptions.APIException):
    """Business-rule violation raised by the services layer."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Request conflicts with the current state.'
    default_code = 'conflict'

    def __init__(self, detail=None, code=None, **context):
        super().__init__(detail, code)
        self.context = context


class InvalidRequest(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request.'
    default_code = 'invalid_request'


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class DoctorUnavailable(DomainError):
    default_detail = 'Doctor is not available at the requested time.'
    default_code = 'doctor_unavailable'


class SlotConflict(DomainError):
    default_detail = 'The slot was taken by a concurrent booking, please re-submit.'
    default_code = 'slot_conflict'


class InvalidTransition(DomainError):
    default_code = 'invalid_transition'

    def __init__(self, current: str, requested: str):
        super().__init__(
            f'Cannot change status from {current} to {requested}.',
            current=current,
            requested=requested,
        )


class PaymentStateError(DomainError):
    default_detail = 'Payment is not in a state that allows this operation.'
    default_code = 'invalid_payment_state'

    def __init__(self, current: str, requested: str):
        super().__init__(
            f'Cannot change payment from {current} to {requested}.',
            current=current,
            requested=requested,
        )


def _code_of(exc: exceptions.APIException) -> str:
    codes = exc.get_codes()
    if isinstance(codes, str):
        return codes
    return getattr(exc, 'default_code', 'api_error')


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        request = context.get('request')
        logger.exception('unhandled error on %s %s', getattr(request, 'method', '?'), getattr(request, 'path', '?'))
        return Response(
            {'ok': False, 'code': 'server_error', 'message': 'Internal server error.'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    body = {'ok': False, 'code': 'api_error', 'message': ''}
    if isinstance(exc, exceptions.ValidationError):
        body['code'] = 'validation_error'
        body['message'] = 'Validation failed.'
        if isinstance(resp.data, dict):
            body['fieldErrors'] = resp.data
        else:
            body['fieldErrors'] = {'non_field_errors': resp.data}
    elif isinstance(exc, exceptions.APIException):
        body['code'] = _code_of(exc)
        detail = resp.data.get('detail') if isinstance(resp.data, dict) else resp.data
        body['message'] = str(detail if detail is not None else exc.detail)
        if isinstance(exc, DomainError):
            body.update(exc.context)
    else:
        body['message'] = str(resp.data)

    if resp.status_code >= 500:
        logger.error('api error %s: %s', resp.status_code, body['message'])
    return Response(body, status=resp.status_code, headers=_auth_headers(resp))


def _auth_headers(resp) -> dict:
    # keep WWW-Authenticate / Retry-After set by DRF
    return {k: v for k, v in resp.items() if k in ('WWW-Authenticate', 'Retry-After')}
