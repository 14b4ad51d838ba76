"""CLI — port resolution and table creation."""

import click
import pytest
from click.testing import CliRunner
from sqlalchemy import create_engine, inspect

from shopfloor.cli.main import main, resolve_port
from shopfloor.config import settings


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "shopfloor" in result.output


def test_resolve_port_precedence(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    assert resolve_port(None) == settings.port
    assert resolve_port(9000) == 9000

    monkeypatch.setenv("PORT", "7000")
    assert resolve_port(9000) == 7000


def test_resolve_port_rejects_garbage(monkeypatch):
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(click.BadParameter):
        resolve_port(None)


def test_init_db_creates_tables(tmp_path, monkeypatch):
    db_file = tmp_path / "shop.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{db_file}")
    monkeypatch.setattr(settings, "messages_database_url", "")
    monkeypatch.setattr(settings, "catalog_database_url", "")

    result = CliRunner().invoke(main, ["init-db"])
    assert result.exit_code == 0, result.output

    engine = create_engine(f"sqlite:///{db_file}")
    try:
        assert {"users", "messages", "products"} <= set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
