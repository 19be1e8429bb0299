# app/services/auth_service.py
"""
Registration and login.

Only two failures are meaningful to callers: DuplicateIdentity (register)
and InvalidCredentials (login). Store failures surface as StoreUnavailable.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional, Protocol

from app.core.errors import DuplicateIdentity, InvalidCredentials, InvalidRequest
from app.core.roles import UserRole, parse_role
from app.core.security import TokenIssuer, burn_password_check, hash_password, verify_password
from app.models.user import User
from app.schemas.auth import AuthResponse, RegisterRequest

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    async def find_by_email(self, email: str) -> Optional[User]:
        ...

    async def create(self, user: User) -> User:
        ...

    async def get_company_name(self, company_id: Optional[uuid.UUID]) -> Optional[str]:
        ...


class AuthService:
    def __init__(self, store: CredentialStore, tokens: TokenIssuer) -> None:
        self.store = store
        self.tokens = tokens

    async def _credential_for(self, user: User, *, now: Optional[datetime] = None) -> AuthResponse:
        role = parse_role(user.role)
        issued = self.tokens.issue(user_id=user.id, role=role, tenant_id=user.company_id, now=now)
        company_name = await self.store.get_company_name(user.company_id)

        return AuthResponse(
            token=issued.access_token,
            expiration=issued.expires_at,
            user_id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            full_name=user.full_name,
            email=user.email,
            phone_number=user.phone_number,
            address=user.address,
            city=user.city,
            role=role.value,
            profile_image_url=user.profile_image_url,
            company_id=user.company_id,
            company_name=company_name,
        )

    async def register(self, payload: RegisterRequest) -> AuthResponse:
        """
        Self-registration. The role is always User; any role in the payload is ignored.
        """
        email = User.normalize_email(str(payload.email))
        if not payload.password:
            raise InvalidRequest("password is required")

        if payload.role and payload.role.strip().lower() != UserRole.USER.value.lower():
            logger.warning("Ignoring role %r supplied to self-registration", payload.role)

        if await self.store.find_by_email(email) is not None:
            raise DuplicateIdentity()

        hashed = hash_password(payload.password)
        user = User(
            id=uuid.uuid4(),
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=email,
            password_hash=hashed.hash,
            password_salt=hashed.salt,
            role=UserRole.USER.value,
            company_id=None,
            phone_number=payload.phone_number,
            address=payload.address,
            city=payload.city,
            date_of_birth=payload.date_of_birth,
            is_active=True,
        )
        user = await self.store.create(user)
        logger.info("Registered user %s", user.id)

        return await self._credential_for(user)

    async def login(self, email: str, password: str) -> AuthResponse:
        user = await self.store.find_by_email(email)

        if user is None:
            burn_password_check(password)
            logger.info("Login failed")
            raise InvalidCredentials()

        if not verify_password(password, user.password_hash, user.password_salt) or not user.is_active:
            logger.info("Login failed")
            raise InvalidCredentials()

        return await self._credential_for(user)


async def ensure_super_admin(store: CredentialStore, *, email: str, password: str, user_count: int) -> Optional[User]:
    """
    Bootstrap the single global SuperAdmin on an empty users table.
    """
    if user_count > 0:
        return None

    hashed = hash_password(password)
    user = User(
        id=uuid.uuid4(),
        first_name="Super",
        last_name="Admin",
        email=User.normalize_email(email),
        password_hash=hashed.hash,
        password_salt=hashed.salt,
        role=UserRole.SUPER_ADMIN.value,
        company_id=None,
        is_active=True,
    )
    user = await store.create(user)
    logger.info("Created bootstrap SuperAdmin %s", user.id)
    return user
