import asyncio

from sqlmodel import SQLModel, select

from required_plugins.core.db import AsyncSessionLocal, engine
from required_plugins.models import InstalledPlugin, User


async def seed_data():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    async with AsyncSessionLocal() as session:
        # Check if users exist
        result = await session.execute(select(User).limit(1))
        if result.first():
            print("Users already exist. Skipping seed.")
            return

        session.add(User(username="admin", api_key="admin-secret", role="admin"))
        session.add(User(username="alice", api_key="alice-secret", role="user", language="zh"))

        # One manifest plugin installed but not activated, so the table has something to activate
        session.add(InstalledPlugin(file_path="contact-form/contact-form.php", name="Contact Form", active=False))

        await session.commit()
        print("Seeded users: admin (key: admin-secret), alice (key: alice-secret)")
        print("Seeded installed plugin: contact-form/contact-form.php (inactive)")


if __name__ == "__main__":
    asyncio.run(seed_data())
