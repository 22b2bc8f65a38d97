import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# Password complexity requirements
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72  # bcrypt only uses the first 72 bytes
SPECIAL_CHARS = r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>\/?]"
COMMON_PASSWORDS = {"password", "12345678", "qwerty123", "admin123", "senha123"}


def check_password_complexity(v: str) -> str:
    """
    Validate password meets complexity requirements:
    - At least 8 characters
    - At least one lowercase letter
    - At least one uppercase letter
    - At least one digit
    - At least one special character
    """
    if len(v) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain a lowercase letter")
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain an uppercase letter")
    if not re.search(r"\d", v):
        raise ValueError("Password must contain a digit")
    if not re.search(SPECIAL_CHARS, v):
        raise ValueError("Password must contain a special character (!@#$%^&* etc.)")
    if v.lower() in COMMON_PASSWORDS:
        raise ValueError("This password is too common")
    return v


class UserRegister(BaseModel):
    """User registration request."""

    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$")
    password: str = Field(
        ..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH
    )
    display_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password_complexity(cls, v: str) -> str:
        return check_password_complexity(v)


class UserLogin(BaseModel):
    """Login request."""

    username: str
    password: str


class Token(BaseModel):
    """Access token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class TokenData(BaseModel):
    """JWT payload."""

    user_id: Optional[str] = None
    username: Optional[str] = None
    role: Optional[str] = None


class UserOut(BaseModel):
    """Public user information."""

    id: str
    username: str
    display_name: str
    role: str = "user"
    response_style: str = "BREVE"

    class Config:
        from_attributes = True


class UserWithToken(BaseModel):
    """Successful login/registration: user info plus token."""

    user: UserOut
    token: Token
