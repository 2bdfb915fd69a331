"""
TimeAudit - Alembic Environment

Migrates the local SQLite cache. The URL comes from TIMEAUDIT_DATABASE_URL
(or .env), never from alembic.ini, and online runs go through the same
engine factory the app uses so the connection pragmas match.
"""

from logging.config import fileConfig

from alembic import context

from timeaudit.config import get_settings
from timeaudit.database import create_cache_engine
from timeaudit.models import Base, CacheBucket  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
database_url = get_settings().database_url

# SQLite cannot ALTER most columns in place; batch mode rebuilds the table
MIGRATION_OPTIONS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "render_as_batch": True,
}


def run_migrations_offline() -> None:
    """Emit the cache schema as SQL without connecting."""
    context.configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    cache_engine = create_cache_engine(database_url)

    try:
        with cache_engine.connect() as connection:
            context.configure(connection=connection, **MIGRATION_OPTIONS)

            with context.begin_transaction():
                context.run_migrations()
    finally:
        cache_engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
