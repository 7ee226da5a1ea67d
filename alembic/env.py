"""
Alembic migration environment for the tracker and QC tables.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import load_env_files, normalize_postgres_url, resolve_database_url
from db.models import (  # noqa: F401  imports register the tables on Base.metadata
    QCAfd,
    QCEvaluation,
    Task,
    TrackerRecord,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _migration_url() -> str:
    """
    Priority:
    1) `-x db_url=...`
    2) ALEMBIC_DATABASE_URL
    3) the application's database URL resolution
    """

    load_env_files()

    x_args = context.get_x_argument(as_dictionary=True)
    url = x_args.get("db_url") or os.getenv("ALEMBIC_DATABASE_URL") or resolve_database_url()
    url = normalize_postgres_url(url)
    if not url.startswith("postgresql"):
        raise RuntimeError("Migrations target PostgreSQL only.")
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=_migration_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _migration_url()
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
