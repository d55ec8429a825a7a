from logging.config import fileConfig
import os

from sqlalchemy import engine_from_config
from sqlalchemy import pool
import models  # noqa: F401  registers every table on Base.metadata
from alembic import context
from core.base import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_database_url() -> str:
    """DATABASE_URL first, then the POSTGRES_* variables, then the app settings."""
    if "DATABASE_URL" in os.environ:
        db_url = os.environ["DATABASE_URL"]
        if db_url.startswith("postgresql://") and "+psycopg" not in db_url:
            db_url = db_url.replace("postgresql://", "postgresql+psycopg://")
        return db_url

    if all(k in os.environ for k in ["POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_SERVER", "POSTGRES_DB"]):
        from urllib.parse import quote_plus
        username = quote_plus(os.environ["POSTGRES_USER"])
        password = quote_plus(os.environ["POSTGRES_PASSWORD"])
        host = os.environ["POSTGRES_SERVER"]
        db = os.environ["POSTGRES_DB"]
        return f"postgresql+psycopg://{username}:{password}@{host}/{db}"

    from core.settings import settings
    return settings.SQLALCHEMY_DATABASE_URI


def require_database_url() -> str:
    url = get_database_url()
    if not url:
        raise ValueError("Database URL is not configured. Please set DATABASE_URL or individual POSTGRES_* environment variables.")
    return url


def run_migrations_offline() -> None:
    """Emit the migration SQL to the script output without connecting."""
    context.configure(
        url=require_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = require_database_url()
    connectable = engine_from_config(
        configuration, prefix="sqlalchemy.", poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
