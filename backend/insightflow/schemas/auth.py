"""
Pydantic schemas for signup, login and the user profile.

Request bodies accept the camelCase keys sent by the dashboard.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SignupRequest(BaseModel):
    """
    Attributes:
        first_name / last_name: Display name parts
        email: Login email (also the username when none is given)
        password: Plaintext password (hashed before storage)
        username: Optional explicit username
    """
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(default="", alias="firstName", description="First name")
    last_name: str = Field(default="", alias="lastName", description="Last name")
    email: str = Field(description="Email address")
    password: str = Field(min_length=1, description="Password")
    username: Optional[str] = Field(default=None, description="Username (defaults to the email)")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError("A valid email address is required")
        return v

    @property
    def effective_username(self) -> str:
        return (self.username or "").strip() or self.email


class LoginRequest(BaseModel):
    """Login with either a username or an email."""
    username: Optional[str] = Field(default=None, description="Username")
    email: Optional[str] = Field(default=None, description="Email address")
    password: str = Field(description="Password")

    @property
    def identifier(self) -> str:
        return (self.email or "").strip() or (self.username or "").strip()


class TokenResponse(BaseModel):
    token: str = Field(description="JWT bearer token")
    message: str = Field(description="Outcome message")


class UserProfileResponse(BaseModel):
    """Profile as shown on the dashboard, with analysis counts."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    first_name: Optional[str] = Field(default=None, serialization_alias="firstName")
    last_name: Optional[str] = Field(default=None, serialization_alias="lastName")
    email: str
    avatar: Optional[str] = None
    role: str
    created_at: Optional[str] = Field(default=None, serialization_alias="createdAt")
    last_login: Optional[str] = Field(default=None, serialization_alias="lastLogin")
    total_analyses: int = Field(default=0, serialization_alias="totalAnalyses")
    successful_analyses: int = Field(default=0, serialization_alias="successfulAnalyses")
