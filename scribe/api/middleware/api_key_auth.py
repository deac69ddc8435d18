"""
Optional shared-key gate for the REST API.

When ``settings.api_key`` is set, every ``/api/v1/`` request must carry
``Authorization: Bearer <key>``. Health, docs and the WebSocket endpoint
sit outside that prefix and are never gated.
"""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from scribe.core.config import get_settings

_BEARER = "Bearer "


class ApiKeyAuthMiddleware(BaseHTTPMiddleware):
    _PROTECTED_PREFIX = "/api/v1/"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        expected = get_settings().api_key
        if not expected or not request.url.path.startswith(self._PROTECTED_PREFIX):
            return await call_next(request)

        header = request.headers.get("authorization", "")
        if not header.startswith(_BEARER) or header[len(_BEARER) :] != expected:
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid API key", "code": "AUTH_REQUIRED"},
            )
        return await call_next(request)
