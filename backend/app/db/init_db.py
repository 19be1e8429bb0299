from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.crud.users import UserRepository
from app.db.session import AsyncSessionLocal
from app.services.auth_service import ensure_super_admin

logger = logging.getLogger(__name__)


async def init_db(
    settings: Settings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> None:
    """
    Seed the global SuperAdmin when the users table is empty.
    Schema itself is managed by Alembic.
    """
    if not settings.SUPERADMIN_EMAIL or not settings.SUPERADMIN_PASSWORD:
        logger.info("SUPERADMIN_EMAIL/SUPERADMIN_PASSWORD not set; skipping SuperAdmin bootstrap")
        return

    async with (session_factory or AsyncSessionLocal)() as session:
        repo = UserRepository(session)
        await ensure_super_admin(
            repo,
            email=settings.SUPERADMIN_EMAIL,
            password=settings.SUPERADMIN_PASSWORD,
            user_count=await repo.count(),
        )
