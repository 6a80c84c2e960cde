"""Alembic environment. Migrations run on a sync driver."""

from logging.config import fileConfig
import os
from pathlib import Path

# .env has to be loaded before DATABASE_URL is read
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / ".env")

from sqlalchemy import MetaData, create_engine, pool

from alembic import context
from property_api.core.config import sync_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Migrations are written by hand; no autogenerate metadata
target_metadata = MetaData()


def get_url() -> str:
    """DATABASE_URL (or the SQLite default) with its async driver swapped out."""
    return sync_database_url(os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./properties.db"))


def run_migrations_offline() -> None:
    """Emit SQL without a live connection."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(get_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
