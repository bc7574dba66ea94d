"""Bearer-token gate for the network transports.

When a token is configured, every HTTP request and WebSocket handshake must
carry `Authorization: Bearer <token>`. WebSocket clients that cannot set
headers may pass `?token=<token>` instead. `/health` is always open.

Rejections:
    HTTP      -> 401 `{success: false, error: {kind: "Unauthorized", message}}`
    WebSocket -> close with code 1008 before accept
"""

from __future__ import annotations

import hmac
import logging

from starlette.datastructures import Headers, QueryParams
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from gemini_mcp.foundation.errors import ErrorKind, Failure

logger = logging.getLogger("gemini_mcp.transport.auth")

BYPASS_PATHS: frozenset[str] = frozenset({"/health"})
POLICY_VIOLATION = 1008


def _bearer(headers: Headers) -> str | None:
    scheme, _, value = headers.get("authorization", "").partition(" ")
    return (value.strip() or None) if scheme.lower() == "bearer" else None


class BearerAuthMiddleware:
    """Reject HTTP and WebSocket connections that lack the bearer token.

    If `token` is None, authentication is disabled and everything passes
    through.
    """

    __slots__ = ("app", "_token")

    def __init__(self, app: ASGIApp, token: str | None = None) -> None:
        self.app = app
        self._token = token

    def _authorized(self, scope: Scope) -> bool:
        provided = _bearer(Headers(scope=scope))
        if provided is None and scope["type"] == "websocket":
            provided = QueryParams(scope.get("query_string", b"")).get("token")
        return provided is not None and hmac.compare_digest(provided.encode(), (self._token or "").encode())

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            self._token is None
            or scope["type"] not in ("http", "websocket")
            or scope["path"] in BYPASS_PATHS
            or self._authorized(scope)
        ):
            await self.app(scope, receive, send)
            return

        logger.warning(f"Rejected unauthenticated {scope['type']} request to {scope['path']}")
        if scope["type"] == "websocket":
            await receive()  # websocket.connect
            await send({"type": "websocket.close", "code": POLICY_VIOLATION})
            return
        failure = Failure(ErrorKind.UNAUTHORIZED, "Missing or invalid bearer token")
        response = JSONResponse(
            {"success": False, "error": failure.to_dict()},
            status_code=failure.status_code,
            headers={"WWW-Authenticate": "Bearer"},
        )
        await response(scope, receive, send)
