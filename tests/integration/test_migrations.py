"""Test Alembic migrations against a throwaway SQLite file."""

import os

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from expenseflow.db.base import Base


pytestmark = pytest.mark.integration

ROOT = os.path.join(os.path.dirname(__file__), "..", "..")
ALEMBIC_INI = os.path.join(ROOT, "alembic.ini")

EXPECTED_TABLES = {
    "profiles",
    "expenses",
    "purchase_orders",
    "approval_history",
    "notifications",
    "push_subscriptions",
}


@pytest.fixture
def migration_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'migrations.db'}")
    yield engine
    engine.dispose()


def _run(engine, fn, revision):
    cfg = Config(ALEMBIC_INI)
    cfg.set_main_option("script_location", os.path.join(ROOT, "expenseflow", "migrations"))
    with engine.begin() as connection:
        cfg.attributes["connection"] = connection
        fn(cfg, revision)


class TestMigrations:
    """Upgrade and downgrade the schema."""

    def test_upgrade_creates_tables(self, migration_engine):
        _run(migration_engine, command.upgrade, "head")

        tables = set(inspect(migration_engine).get_table_names())
        assert EXPECTED_TABLES <= tables

    def test_schema_matches_models(self, migration_engine):
        """Every model column exists after upgrading."""
        _run(migration_engine, command.upgrade, "head")
        inspector = inspect(migration_engine)

        for table in Base.metadata.sorted_tables:
            columns = {c["name"] for c in inspector.get_columns(table.name)}
            assert {c.name for c in table.columns} <= columns, table.name

    def test_downgrade_drops_tables(self, migration_engine):
        _run(migration_engine, command.upgrade, "head")
        _run(migration_engine, command.downgrade, "base")

        tables = set(inspect(migration_engine).get_table_names())
        assert not (EXPECTED_TABLES & tables)
