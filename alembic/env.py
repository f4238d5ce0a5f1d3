"""Alembic environment for the saves and collections tables.

The database URL comes from ``sqlalchemy.url`` in the Alembic config when set,
otherwise from SAVEABLE_DATABASE_URL via SaveableSettings.
"""

from sqlalchemy import create_engine, pool

from alembic import context

from saveable.config import get_settings
from saveable.core.db import Base
import saveable.models  # noqa: F401  registers the tables on Base.metadata

target_metadata = Base.metadata


def get_url() -> str:
    """Resolve the database URL from context or settings."""
    url = context.config.get_main_option("sqlalchemy.url")
    if url:
        return url
    return get_settings().database_url


def run_migrations_offline() -> None:
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(get_url(), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
