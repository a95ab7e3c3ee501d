"""
Tests for the Alembic schema migrations.
"""
import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

from memberhub.db.base import Base
from memberhub import models  # noqa: F401

VERSIONS_DIR = Path(__file__).resolve().parents[1] / "memberhub" / "db" / "migrations" / "versions"


def load_revision(filename: str):
    spec = importlib.util.spec_from_file_location(filename.removesuffix(".py"), VERSIONS_DIR / filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_initial_schema_matches_models():
    revision = load_revision("001_initial_schema.py")
    assert revision.revision == "001"
    assert revision.down_revision is None

    engine = sa.create_engine("sqlite://")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            revision.upgrade()

        inspector = sa.inspect(conn)
        assert set(inspector.get_table_names()) == set(Base.metadata.tables)
        for table in Base.metadata.tables.values():
            migrated = {column["name"] for column in inspector.get_columns(table.name)}
            assert migrated == {column.name for column in table.columns}, table.name

        with Operations.context(MigrationContext.configure(conn)):
            revision.downgrade()

        assert sa.inspect(conn).get_table_names() == []
