import logging
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from planora.core.settings import get_settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


def _secret(secret_key: Optional[str]) -> str:
    secret = secret_key if secret_key is not None else get_settings().secret_key
    if not secret:
        raise ValueError("SECRET_KEY environment variable is required")
    return secret


def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: Stored as the ``sub`` claim
        expires_delta: Optional custom expiration time
        secret_key: Signing key; defaults to SECRET_KEY from settings

    Returns:
        str: The encoded JWT token
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": user_id, "exp": expire}
    return jwt.encode(to_encode, _secret(secret_key), algorithm=ALGORITHM)


def verify_token(token: str, secret_key: Optional[str] = None) -> Optional[str]:
    """
    Verify and decode a JWT token.

    Returns:
        Optional[str]: The user id from the token if valid, None otherwise
    """
    try:
        payload = jwt.decode(token, _secret(secret_key), algorithms=[ALGORITHM])
    except ValueError as e:
        logger.warning(f"Token verification unavailable: {e}")
        return None
    except JWTError:
        return None

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        return None
    return user_id
