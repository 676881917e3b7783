"""
Database seeding script for a demo owner.

Creates one owner with one application and prints the application's API
key so client programs can be pointed at a local instance.

    python -m authgate.seed_owner
"""

import asyncio

from sqlalchemy import select

from authgate.app.core.security import generate_api_key, get_password_hash
from authgate.app.db.session import AsyncSessionLocal, Base, engine
from authgate.app.models.application import Application
from authgate.app.models.owner import Owner

DEMO_USERNAME = "demo"
DEMO_PASSWORD = "demo12345"


async def seed_owner():
    """
    Seed a demo owner and application.

    Does nothing if the demo owner already exists.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting owner seeding...")

        result = await db.execute(select(Owner).where(Owner.username == DEMO_USERNAME))
        if result.scalar_one_or_none():
            print("ℹ️  Demo owner already exists, skipping seeding")
            return

        owner = Owner(
            email="demo@example.com",
            username=DEMO_USERNAME,
            hashed_password=get_password_hash(DEMO_PASSWORD),
            is_active=True
        )
        db.add(owner)
        await db.flush()

        application = Application(
            owner_id=owner.id,
            name="Demo Application",
            description="Seeded for local development",
            api_key=generate_api_key(),
            is_active=True
        )
        db.add(application)
        await db.commit()

        print(f"✅ Created owner (username: {DEMO_USERNAME}, password: {DEMO_PASSWORD})")
        print(f"✅ Created application '{application.name}'")
        print(f"\n🔑 API key: {application.api_key}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_owner())
