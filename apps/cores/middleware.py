import logging
from urllib.parse import parse_qs

from channels.middleware import BaseMiddleware
from django.db import close_old_connections

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(BaseMiddleware):
    """
    Resolves ``scope["user"]`` for websocket connections from an access
    token passed as ``?token=<jwt>``.
    """

    async def __call__(self, scope, receive, send):
        # Lazy imports to avoid AppRegistryNotReady
        from django.contrib.auth.models import AnonymousUser
        from django.contrib.auth import get_user_model
        from rest_framework_simplejwt.exceptions import TokenError
        from rest_framework_simplejwt.tokens import AccessToken

        User = get_user_model()
        close_old_connections()

        query_string = parse_qs(scope.get("query_string", b"").decode())
        token = query_string.get("token")
        scope["user"] = AnonymousUser()

        if token:
            try:
                access_token = AccessToken(token[0])
                user = await User.objects.aget(id=access_token["user_id"])
                if user.is_active:
                    scope["user"] = user
                logger.debug("websocket user resolved: %s", user.pk)
            except (TokenError, User.DoesNotExist) as exc:
                logger.info("websocket token rejected: %s", exc)

        return await super().__call__(scope, receive, send)
