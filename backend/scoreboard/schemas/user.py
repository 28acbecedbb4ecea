from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, EmailStr, Field

from scoreboard.models.enums import UserRole


def _lower_email(value):
    return value.strip().lower() if isinstance(value, str) else value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(_lower_email)]


class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: str

    class Config:
        from_attributes = True


class UserBrief(UserSummary):
    role: UserRole
    created_at: Optional[datetime] = None


class User(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: UserRole
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: NormalizedEmail
    password: str = Field(..., max_length=100)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    image: Optional[str] = Field(default=None, max_length=500)


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., max_length=100)


class AdminUserCreate(BaseModel):
    email: NormalizedEmail
    password: str = Field(..., max_length=100)
    name: Optional[str] = Field(default=None, max_length=100)
    role: UserRole = UserRole.USER


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[NormalizedEmail] = None
    role: Optional[UserRole] = None


class AdminPasswordReset(BaseModel):
    new_password: str = Field(..., max_length=100)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: User


class TokenData(BaseModel):
    user_id: Optional[str] = None
