"""
Common dependencies for FastAPI endpoints.
"""
from typing import Callable, Generator
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from mindchat.core.exceptions import BadRequestError, ForbiddenError
from mindchat.db.session import SessionLocal
from mindchat.models.user import User
from mindchat.services.auth import decode_access_token, get_user_by_id

# HTTP Bearer token security scheme
security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> Callable[[], Session]:
    """
    Session factory for work that outlives the request, such as streamed turns.
    """
    return SessionLocal


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from JWT token.

    Args:
        credentials: Bearer token from Authorization header
        db: Database session

    Returns:
        Authenticated User object

    Raises:
        HTTPException: If token is invalid or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = decode_access_token(credentials.credentials)

    if token_data is None or token_data.user_id is None:
        raise credentials_exception

    try:
        user_id = UUID(token_data.user_id)
    except ValueError:
        raise credentials_exception

    user = get_user_by_id(db, user_id)
    if user is None:
        raise credentials_exception

    return user


async def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Current user, who must have the admin role."""
    if current_user.role != "admin":
        raise ForbiddenError("Admin access required")
    return current_user


def parse_uuid(value: str, name: str = "ID") -> UUID:
    """Parse a string to UUID with error handling."""
    try:
        return UUID(value)
    except ValueError:
        raise BadRequestError(f"Invalid {name}")
