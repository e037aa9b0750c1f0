"""
FastAPI dependencies resolving the acting user from a bearer token.
"""

from typing import Optional

from fastapi import HTTPException, status, Request

from loansim.auth.jwt import decode_token


def get_token_from_request(request: Request) -> Optional[str]:
    """
    Extract JWT token from request.

    Checks the ``Authorization: Bearer`` header first, then the
    ``access_token`` cookie.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]

    return request.cookies.get("access_token")


async def get_current_user_id_optional(request: Request) -> Optional[str]:
    """Return the acting user's id, or None when the request is anonymous."""
    token = get_token_from_request(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None

    return payload.get("sub") or None


async def get_current_user_id(request: Request) -> str:
    """
    Return the acting user's id.

    Raises HTTPException 401 if not authenticated.
    """
    user_id = await get_current_user_id_optional(request)

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_id
