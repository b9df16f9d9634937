"""FastAPI dependencies for resolving the acting user."""

from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from promptcollab.auth.security import token_manager
from promptcollab.exceptions import AuthenticationError

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> UUID:
    """Return the verified actor id carried by the bearer token.

    The identity provider is trusted as-is: the user row is not re-checked.
    """
    if not credentials:
        raise AuthenticationError("Authentication required")

    payload = token_manager.verify_token(credentials.credentials, "access")
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    try:
        return UUID(str(user_id))
    except ValueError:
        raise AuthenticationError("Invalid token payload")
