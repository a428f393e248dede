# alembic/env.py
# Migraciones de contentcore: la URL sale de settings, nunca de alembic.ini
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

from contentcore.core.settings import settings
from contentcore.db.base import Base
import contentcore.models.registry  # noqa: F401  (pages + blog en Base.metadata)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _url() -> str:
    # postgres:// de Heroku ya normalizado a postgresql+psycopg2://
    return settings.SQLALCHEMY_DATABASE_URL


def _configure_kwargs(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # SQLite no soporta ALTER completo: batch mode
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    url = _url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = _url()
    connectable = engine_from_config({"sqlalchemy.url": url}, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
