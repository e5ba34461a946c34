"""
Bearer token verification.

Tokens are issued by the identity service; this platform only verifies them
and reads the principal from the ``sub`` claim.
"""

from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from ..config import get_settings


class TokenData(BaseModel):
    """Claims of a verified access token."""
    principal_id: str
    email: Optional[str] = None


def verify_token(token: str) -> Optional[TokenData]:
    """
    Verify and decode a JWT access token.

    Args:
        token: The encoded JWT

    Returns:
        TokenData if the signature, expiry and subject are valid, None otherwise
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    if not subject:
        return None

    return TokenData(principal_id=str(subject), email=payload.get("email"))
