# app/schemas/auth.py
"""
Request/response schemas for the auth API.

Field names are camelCase on the wire (firstName, profilePicture,
requireReLogin); requests also accept the snake_case names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Requests
# =============================================================================


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class UpdateProfileRequest(CamelModel):
    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


# =============================================================================
# Responses
# =============================================================================


class MessageResponse(CamelModel):
    message: str


class ProfileResponse(CamelModel):
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None


class UpdateProfileResponse(CamelModel):
    message: str
    require_re_login: bool = False
    user: Optional[ProfileResponse] = None


class UploadPictureResponse(CamelModel):
    message: str
    profile_picture: str


class ErrorResponse(CamelModel):
    message: str
    errors: list[str]
