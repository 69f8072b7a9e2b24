from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from planora.core.auth import verify_token

# Missing credentials are handled per route (guests may generate itineraries)
security = HTTPBearer(auto_error=False)


def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """
    Dependency for routes that work with or without auth.

    Returns:
        Optional[str]: The user id if a valid token was sent, None otherwise
    """
    if credentials is None:
        return None
    return verify_token(credentials.credentials)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Dependency to get the authenticated user's id from the bearer token.

    Raises:
        HTTPException: 401 Unauthorized if the token is missing or invalid
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    user_id = verify_token(credentials.credentials)
    if user_id is None:
        raise credentials_exception
    return user_id
