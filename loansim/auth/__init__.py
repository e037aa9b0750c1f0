"""
Identity resolution for saved simulations.
"""

from loansim.auth.jwt import create_access_token, decode_token
from loansim.auth.dependencies import (
    get_current_user_id,
    get_current_user_id_optional,
)

__all__ = [
    "create_access_token",
    "decode_token",
    "get_current_user_id",
    "get_current_user_id_optional",
]
