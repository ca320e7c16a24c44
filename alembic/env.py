"""
env.py — Alembic environment for the RFPFlow schema

The database URL comes from rfpflow settings (DATABASE_URL / .env), never
from alembic.ini. Target metadata is the ORM Base, so autogenerate sees
vendors, rfps, rfp_vendors, proposals and proposal_scores.

Business Rules:
- One transaction per migration run
- SQLite uses batch mode so column changes become table rebuilds
- Column type changes are detected by autogenerate

Called by: alembic CLI (alembic upgrade head)
Depends on: rfpflow.config.get_settings, rfpflow.models.Base
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from rfpflow.config import get_settings
from rfpflow.models import Base

config = context.config
config.set_main_option("sqlalchemy.url", get_settings().database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _configure(**kwargs) -> None:
    url = config.get_main_option("sqlalchemy.url") or ""
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_offline() -> None:
    """Emit SQL to stdout without a database connection."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
