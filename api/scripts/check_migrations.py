"""Fail if Alembic migrations are out of sync with SQLAlchemy models.

Migrates the configured database to head first, then compares the resulting
schema against ``Base.metadata``.
"""

from __future__ import annotations

import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from alembic.autogenerate import compare_metadata
from alembic.migration import MigrationContext
from app import models  # noqa: F401  # Ensure models are registered
from app.config import settings
from app.database import Base, connect_args_for, init_db


def _compare(connection) -> list[object]:
    context = MigrationContext.configure(
        connection,
        opts={
            "compare_type": True,
            "render_as_batch": connection.dialect.name == "sqlite",
        },
    )
    return compare_metadata(context, Base.metadata)


async def main() -> int:
    url = settings.async_database_url
    await init_db(url)

    engine = create_async_engine(url, connect_args=connect_args_for(url))
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
        diffs = await conn.run_sync(_compare)
    await engine.dispose()

    if diffs:
        print("Detected schema differences between models and database:")
        for diff in diffs:
            print(diff)
        return 1

    print("No schema differences detected.")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
