"""Alembic env: migrates with the sync sqlite driver behind the app's aiosqlite URL."""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from axioquan.core.config import get_settings  # noqa: E402
from axioquan.db.base import Base  # noqa: E402

target_metadata = Base.metadata


def get_url() -> str:
    """Settings URL with the async driver dropped; alembic.ini is the fallback."""
    url = get_settings().database_url or config.get_main_option("sqlalchemy.url")
    return url.replace("+aiosqlite", "", 1)


def run_migrations_offline() -> None:
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        # sqlite cannot ALTER most constraints in place
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
