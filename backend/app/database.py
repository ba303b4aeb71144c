import os
import logging
from sqlmodel import SQLModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)

DATABASE_URL = os.getenv(
    "DATABASE_URL", "sqlite+aiosqlite:///./school_portal.db"
)


# Control SQL echo via environment variable and route output through logging
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"
if SQL_ECHO:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

engine = create_async_engine(DATABASE_URL, echo=SQL_ECHO)

async_session = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables() -> None:
    from .models import User, Message

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

        if engine.dialect.name != "sqlite":
            return

        # --- simple schema migration for existing installs ---
        # older message tables predate broadcasts and reply threads
        pragma = "PRAGMA table_info('{table}')"
        async def has_column(table: str, column: str) -> bool:
            result = await conn.execute(text(pragma.format(table=table)))
            cols = [row[1] for row in result.fetchall()]
            return column in cols

        if not await has_column("message", "target_role"):
            await conn.execute(
                text("ALTER TABLE message ADD COLUMN target_role VARCHAR")
            )
        if not await has_column("message", "parent_message_id"):
            await conn.execute(
                text(
                    "ALTER TABLE message ADD COLUMN parent_message_id INTEGER "
                    "REFERENCES message (id)"
                )
            )
        if not await has_column("message", "is_read"):
            await conn.execute(
                text(
                    "ALTER TABLE message ADD COLUMN is_read BOOLEAN DEFAULT 0"
                )
            )


async def get_session() -> AsyncSession:
    async with async_session() as session:
        yield session
