"""
Bearer token authentication.

Kept apart from any view definitions so that DRF can import the class
from settings without pulling in views (and the models they import).
"""
from __future__ import annotations

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed


class BearerJWTAuthentication(JWTAuthentication):
    """JWT access tokens sent as ``Authorization: Bearer <token>``.

    On top of simplejwt's checks, the role claim embedded at login must
    still match the account, so a token never outlives a role change made
    directly in the database.
    """

    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        claimed = validated_token.get('role')
        if claimed is not None and claimed != getattr(user, 'role', None):
            raise AuthenticationFailed('Token role does not match account', code='role_mismatch')
        return user
