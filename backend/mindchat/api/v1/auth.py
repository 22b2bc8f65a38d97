"""
Authentication API endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from mindchat.core.deps import get_db, get_current_user
from mindchat.core.config import settings
from mindchat.models.user import User
from mindchat.schemas.auth import (
    UserRegister,
    UserLogin,
    Token,
    UserOut,
    UserWithToken,
)
from mindchat.services.auth import (
    authenticate_user,
    create_user,
    create_user_token,
    get_user_by_username,
)
from mindchat.services.audit import (
    log_action,
    get_client_info,
    AuditAction,
    TargetType,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def user_to_out(user: User) -> UserOut:
    return UserOut(
        id=str(user.id),
        username=user.username,
        display_name=user.display_name,
        role=user.role,
        response_style=user.response_style,
    )


def user_with_token(user: User) -> UserWithToken:
    return UserWithToken(
        user=user_to_out(user),
        token=Token(
            access_token=create_user_token(user),
            token_type="bearer",
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        ),
    )


@router.post("/register", response_model=UserWithToken, status_code=status.HTTP_201_CREATED)
def register(
    data: UserRegister,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Register a new user.

    - **username**: Unique username (3-50 characters)
    - **password**: Password (8+ chars with uppercase, lowercase, digit, special char)
    - **display_name**: Name the characters address the user by

    Returns user info and access token on success.
    """
    ip_address, user_agent = get_client_info(request)

    if get_user_by_username(db, data.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username is already taken",
        )

    user = create_user(
        db=db,
        username=data.username,
        password=data.password,
        display_name=data.display_name,
    )

    log_action(
        db=db,
        action=AuditAction.REGISTER,
        user_id=user.id,
        target_type=TargetType.USER,
        target_id=str(user.id),
        details={"username": user.username},
        ip_address=ip_address,
        user_agent=user_agent,
    )

    return user_with_token(user)


@router.post("/login", response_model=UserWithToken)
def login(
    data: UserLogin,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Authenticate user and return access token.

    - **username**: Username
    - **password**: Password
    """
    ip_address, user_agent = get_client_info(request)

    user = authenticate_user(db, data.username, data.password)
    if not user:
        log_action(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=None,
            target_type=TargetType.USER,
            target_id=None,
            details={"username": data.username},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    log_action(
        db=db,
        action=AuditAction.LOGIN,
        user_id=user.id,
        target_type=TargetType.USER,
        target_id=str(user.id),
        details={"username": user.username},
        ip_address=ip_address,
        user_agent=user_agent,
    )

    return user_with_token(user)


@router.post("/logout")
def logout(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Logout endpoint.

    For JWT-based authentication, the actual logout is handled client-side
    by removing the token. This endpoint logs the logout action.
    """
    ip_address, user_agent = get_client_info(request)

    log_action(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user.id,
        target_type=TargetType.USER,
        target_id=str(current_user.id),
        ip_address=ip_address,
        user_agent=user_agent,
    )

    return {"message": "Logged out"}


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return user_to_out(current_user)
