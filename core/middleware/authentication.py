"""
Authentication middleware.

Verifies the bearer JWT on every non-public request and places the caller's
user id on the ASGI scope. Loading the ``User`` row happens in the
``get_current_user`` dependency so it shares the request's DB session.
"""

import logging
import re
from typing import Callable, Optional

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse

from core.middleware.error_handling import error_body
from core.security import verify_jwt_token

logger = logging.getLogger(__name__)

# Public endpoints that don't require authentication
PUBLIC_ENDPOINTS = [
    "/",
    "/health",
    "/ready",
    "/api/v1/health",
    "/api/v1/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
]

# (method, path regex) pairs reachable without a token
PUBLIC_ROUTES = [
    ("GET", re.compile(r"^/api/v1/invitations/token/[^/]+/?$")),
]


class AuthenticationError(Exception):
    """Base exception for authentication errors."""
    pass


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""
    pass


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is invalid."""
    pass


class AuthenticationMiddleware:
    """
    Bearer-token gate in front of the API routes.

    On success the scope carries ``user_id`` and ``jwt_payload``.
    """

    def __init__(
        self,
        app: Callable,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
    ):
        self.app = app
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)

        if scope.get("method") == "OPTIONS" or self._is_public_endpoint(
            request.method, request.url.path
        ):
            await self.app(scope, receive, send)
            return

        try:
            token = self._extract_token(request)
            if not token:
                raise TokenInvalidError("No authentication token provided")

            try:
                payload = verify_jwt_token(token, self.jwt_secret, self.jwt_algorithm)
            except jwt.ExpiredSignatureError:
                raise TokenExpiredError("Token has expired")
            except jwt.InvalidTokenError as e:
                raise TokenInvalidError(f"Invalid token: {str(e)}")

            user_id = payload.get("userId")
            if not isinstance(user_id, int):
                raise TokenInvalidError("Token missing userId")
        except TokenExpiredError:
            await self._send_error_response(
                scope,
                receive,
                send,
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="TOKEN_EXPIRED",
                message="Authentication token has expired",
            )
            return
        except TokenInvalidError as e:
            logger.warning(f"Rejected request to {request.url.path}: {e}")
            await self._send_error_response(
                scope,
                receive,
                send,
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="UNAUTHENTICATED",
                message="Authentication required",
            )
            return

        scope["user_id"] = user_id
        scope["jwt_payload"] = payload
        await self.app(scope, receive, send)

    def _is_public_endpoint(self, method: str, path: str) -> bool:
        if path in PUBLIC_ENDPOINTS:
            return True

        public_prefixes = ["/docs", "/redoc", "/openapi"]
        if any(path.startswith(prefix) for prefix in public_prefixes):
            return True

        return any(
            method == route_method and pattern.match(path)
            for route_method, pattern in PUBLIC_ROUTES
        )

    def _extract_token(self, request: Request) -> Optional[str]:
        """Bearer token from the Authorization header, if any."""
        auth_header = request.headers.get("Authorization")

        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:].strip() or None

        return None

    async def _send_error_response(
        self,
        scope: dict,
        receive: Callable,
        send: Callable,
        status_code: int,
        code: str,
        message: str,
    ) -> None:
        response = JSONResponse(
            status_code=status_code,
            content=error_body(message, code),
            headers={"WWW-Authenticate": "Bearer"},
        )
        await response(scope, receive, send)
