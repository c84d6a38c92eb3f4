import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from dotenv import load_dotenv

# --- Load .env ---
load_dotenv()

from config import Config

# This is the Alembic Config object
config = context.config

# DATABASE_URL from .env wins over alembic.ini; the app default is the fallback
config.set_main_option("sqlalchemy.url", os.getenv("DATABASE_URL") or Config.SQLALCHEMY_DATABASE_URI)

# Logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# --- models must be imported so the metadata is complete ---
from configs import db
from db.models import *  # noqa: F401,F403

target_metadata = db.metadata

COMPARE_KW = dict(
    compare_type=True,
    compare_server_default=True,
    render_as_batch=True,  # SQLite needs batch mode for ALTER
)


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_KW
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata, **COMPARE_KW
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
