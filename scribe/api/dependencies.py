"""FastAPI dependencies shared by REST routes."""

from fastapi import Header

from scribe.core.exceptions import AuthenticationRequiredError


async def get_current_user(x_user_id: str | None = Header(default=None)) -> str:
    """Return the authenticated user id forwarded by the auth layer.

    Session-cookie verification happens upstream; requests reach this
    service with the resolved identity in ``X-User-Id``.
    """
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationRequiredError()
    return x_user_id.strip()
