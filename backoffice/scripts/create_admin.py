import asyncio
import logging
import os

from sqlalchemy import select

from backoffice.constants.permissions import Role
from backoffice.core.db import AsyncSessionLocal
from backoffice.core.logging import setup_logging
from backoffice.core.security import hash_password
from backoffice.models.users.user_models import User

logger = logging.getLogger(__name__)


async def create_admin(username: str, password: str) -> None:
    async with AsyncSessionLocal() as session:
        existing = await session.scalar(select(User.id).where(User.username == username))
        if existing:
            logger.info("Admin user already exists", extra={"username": username})
            return

        session.add(
            User(
                username=username,
                full_name="Administrator",
                password_hash=hash_password(password),
                role=Role.ADMIN,
                is_active=True,
            )
        )
        await session.commit()
        logger.info("Admin user created", extra={"username": username})


if __name__ == "__main__":
    setup_logging()
    asyncio.run(
        create_admin(
            os.getenv("ADMIN_USERNAME", "admin@example.com"),
            os.getenv("ADMIN_PASSWORD", "admin123"),
        )
    )
