import logging

from django.contrib.auth import get_user_model
from rest_framework import authentication, exceptions

logger = logging.getLogger(__name__)

User = get_user_model()


class ActingUserAuthentication(authentication.BaseAuthentication):
    """
    Identify the acting user from the ``x-user-id`` header.

    Login itself happens outside this service; the gateway in front of it
    resolves the user and forwards the id. A bearer token, when present, is
    handled by simplejwt's JWTAuthentication further down the chain.
    """

    header = "HTTP_X_USER_ID"

    def authenticate(self, request):
        raw = request.META.get(self.header)
        if not raw:
            return None

        try:
            user_id = int(raw)
        except (TypeError, ValueError):
            raise exceptions.AuthenticationFailed("Invalid x-user-id header")

        try:
            user = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            logger.warning(f"x-user-id refers to unknown user {user_id}")
            raise exceptions.AuthenticationFailed("Unknown user")

        if not user.is_active:
            raise exceptions.AuthenticationFailed("User is inactive")

        return user, None

    def authenticate_header(self, request):
        return 'Bearer realm="api"'
