"""
JWT access tokens using python-jose.

Tokens are issued by the identity provider; this service only needs to
verify them. ``create_access_token`` is kept for the issuer and for tests.
"""

from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from jose import jwt, JWTError

from loansim.config import get_settings

settings = get_settings()


def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a JWT access token for a user.

    Args:
        user_id: Identifier of the user, stored as the ``sub`` claim
        expires_delta: Optional custom expiration time
        extra_claims: Additional claims to embed (e.g., name, email)

    Returns:
        Encoded JWT token string
    """
    to_encode = dict(extra_claims or {})

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.jwt_access_token_expire_minutes
        )

    to_encode.update({
        "sub": str(user_id),
        "exp": expire,
        "type": "access",
    })

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT token.

    Returns:
        Decoded payload dict if valid, None if invalid/expired
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
