# backend/app/schemas/auth.py
from __future__ import annotations

import re
import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

_PHONE_RE = re.compile(r"^\+?[0-9][0-9 ()\-.]{5,19}$")


def _normalize_name(value: str) -> str:
    v = " ".join(value.strip().split())
    if not v:
        raise ValueError("Must not be blank.")
    return v


def _normalize_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = " ".join(value.strip().split())
    return v or None


class RegisterRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)

    phone_number: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=300)
    city: Optional[str] = Field(default=None, max_length=100)
    date_of_birth: Optional[date] = None

    # Accepted for compatibility with older clients; self-registration always yields "User".
    role: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return _normalize_name(v)

    @field_validator("address", "city")
    @classmethod
    def validate_optional_text(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_optional(v)

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        v = _normalize_optional(v)
        if v is not None and not _PHONE_RE.match(v):
            raise ValueError("Must be a valid phone number.")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expiration: datetime

    user_id: uuid.UUID
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    role: str
    profile_image_url: Optional[str] = None
    company_id: Optional[uuid.UUID] = None
    company_name: Optional[str] = None


class MeResponse(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    company_id: Optional[uuid.UUID] = None
    is_active: bool
