import asyncio
import logging
import os
import secrets

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, select

import required_plugins.core.logging_config  # noqa: F401  Centralized logging
import required_plugins.models  # noqa: F401  Registers tables with SQLModel.metadata
from required_plugins.core.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(settings.DATABASE_URL, echo=False, future=True)
AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    max_retries = 10
    retry_interval = 2

    for attempt in range(max_retries):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

            # Provision initial admin user if no users exist
            from required_plugins.models.user import User

            async with AsyncSessionLocal() as session:
                result = await session.execute(select(func.count(User.id)))
                user_count = result.scalar()

                if user_count == 0:
                    username = os.getenv("INITIAL_ADMIN_USERNAME", "admin")
                    api_key = os.getenv("INITIAL_ADMIN_API_KEY")

                    if not api_key:
                        api_key = secrets.token_urlsafe(16)

                    session.add(User(username=username, api_key=api_key, role="admin", language="en"))
                    await session.commit()

                    logger.warning(
                        f"Initial admin user created. Username: {username} API Key: {api_key} "
                        "(save these credentials, they are shown only once)"
                    )
            logger.info("Database initialized successfully.")
            return
        except Exception as e:
            logger.warning(f"Database connection failed (attempt {attempt + 1}/{max_retries}): {e}")
            await asyncio.sleep(retry_interval)

    logger.error("Could not connect to database after maximum retries.")
    raise Exception("Database connection failed")


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session
