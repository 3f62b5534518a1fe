from django.conf import settings
from jose import JWTError, jwt
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import BasePermission


class TokenUser:
    """User decoded from a bearer token issued by the user service."""
    is_authenticated = True
    is_active = True

    def __init__(self, payload):
        self.payload = payload
        self.id = payload.get('id') or payload.get('user_id') or payload.get('sub')
        self.username = payload.get('username') or payload.get('email') or str(self.id)

    def __str__(self):
        return self.username


class JWTAuthentication(BaseAuthentication):
    """
    Authentication using the ``Authorization: [Bearer ]<jwt>`` header.
    The token is verified against settings.JWT_SECRET.
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        header = get_authorization_header(request).decode('utf-8', errors='ignore').strip()
        if not header:
            return None

        parts = header.split()
        if len(parts) == 2 and parts[0].lower() == self.keyword.lower():
            token = parts[1]
        elif len(parts) == 1:
            token = parts[0]
        else:
            raise AuthenticationFailed('Invalid Authorization header')

        try:
            payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        except JWTError:
            raise AuthenticationFailed('Invalid or expired token')

        return (TokenUser(payload), token)

    def authenticate_header(self, request):
        return self.keyword


class IsAuthenticatedOrAuthDisabled(BasePermission):
    """IsAuthenticated, unless settings.AUTH_REQUIRED is off."""

    def has_permission(self, request, view):
        if not settings.AUTH_REQUIRED:
            return True
        return bool(request.user and request.user.is_authenticated)


def acting_user_id(request):
    """Id of the authenticated token user, or None."""
    user = getattr(request, 'user', None)
    if isinstance(user, TokenUser):
        try:
            return int(user.id)
        except (TypeError, ValueError):
            return None
    return None
