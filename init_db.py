# init_db.py
import asyncio

from clinic.db.base import Base
from clinic.db.seed import seed_if_empty
from clinic.db.sql import AsyncSessionLocal, engine

# IMPORTANT: import all models so that Base.metadata knows them
from clinic.modules.users import models as users_models  # noqa: F401
from clinic.modules.appointments import models as appointments_models  # noqa: F401


async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await seed_if_empty(session)
    await engine.dispose()

    print("Database schema recreated and seeded successfully!")


if __name__ == "__main__":
    asyncio.run(init_models())
