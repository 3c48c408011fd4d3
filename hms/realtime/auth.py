"""
WebSocket authentication.

Browsers cannot set headers on a WebSocket handshake, so the access
token travels in the query string: ``/ws/notifications/?token=<jwt>``.
"""
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError

from hms.authentication import BearerJWTAuthentication


@database_sync_to_async
def user_from_token(raw: str):
    auth = BearerJWTAuthentication()
    try:
        token = auth.get_validated_token(raw)
        return auth.get_user(token)
    except (InvalidToken, TokenError, AuthenticationFailed):
        return AnonymousUser()


class JwtQueryAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get('query_string', b'').decode())
        raw = (params.get('token') or [''])[0]
        scope['user'] = await user_from_token(raw) if raw else AnonymousUser()
        return await super().__call__(scope, receive, send)
