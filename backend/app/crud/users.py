# app/crud/users.py
from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DuplicateIdentity, StoreUnavailable
from app.models.company import Company
from app.models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """
    Credential store backed by the users table.

    Emails are written lower-cased; lookups compare lower(email) as well so
    rows written by other tools still match case-insensitively.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_email(self, email: str) -> Optional[User]:
        normalized = User.normalize_email(email)
        stmt = select(User).where(func.lower(User.email) == normalized)
        try:
            return (await self.db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("User lookup failed")
            raise StoreUnavailable() from exc

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        try:
            return await self.db.get(User, user_id, populate_existing=True)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("User lookup failed")
            raise StoreUnavailable() from exc

    async def create(self, user: User) -> User:
        user.email = User.normalize_email(user.email)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            # Unique index on email: lost a race with a concurrent registration.
            await self.db.rollback()
            raise DuplicateIdentity() from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("User insert failed")
            raise StoreUnavailable() from exc
        await self.db.refresh(user)
        return user

    async def get_company_name(self, company_id: Optional[uuid.UUID]) -> Optional[str]:
        if company_id is None:
            return None
        try:
            return (
                await self.db.execute(select(Company.name).where(Company.id == company_id))
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreUnavailable() from exc

    async def count(self) -> int:
        try:
            return int((await self.db.execute(select(func.count(User.id)))).scalar() or 0)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("User count failed")
            raise StoreUnavailable() from exc
