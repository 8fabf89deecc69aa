"""Tests for the database management command."""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from roster import db_setup
from roster.directory import SQLDirectoryRepository


def test_commands_require_configuration(monkeypatch):
    monkeypatch.setattr(db_setup, "is_database_configured", lambda: False)

    with pytest.raises(SystemExit, match="ROSTER_DB_URL"):
        db_setup.main(["init"])


def test_init_and_seed(tmp_path, monkeypatch, capsys):
    engine = create_engine(f"sqlite:///{tmp_path / 'cli.db'}", future=True)
    factory = sessionmaker(bind=engine, future=True)
    monkeypatch.setattr(db_setup, "is_database_configured", lambda: True)
    monkeypatch.setattr(db_setup, "get_engine", lambda: engine)
    monkeypatch.setattr(db_setup, "get_session_factory", lambda: factory)

    db_setup.main(["init"])
    db_setup.main(["seed"])
    db_setup.main(["seed"])

    output = capsys.readouterr().out
    assert "Database tables ensured." in output
    assert "Seed data inserted." in output
    assert "already contains seed data" in output
    directory = SQLDirectoryRepository(factory)
    assert directory.get_area("area-worship").name == "Louvor"
    groups = directory.get_groups_with_members("area-worship", ["group-a", "group-b"])
    assert [group.id for group in groups] == ["group-a", "group-b"]


def test_seed_force_merges_again(tmp_path, monkeypatch, capsys):
    engine = create_engine(f"sqlite:///{tmp_path / 'cli.db'}", future=True)
    factory = sessionmaker(bind=engine, future=True)
    monkeypatch.setattr(db_setup, "is_database_configured", lambda: True)
    monkeypatch.setattr(db_setup, "get_engine", lambda: engine)
    monkeypatch.setattr(db_setup, "get_session_factory", lambda: factory)

    db_setup.main(["init"])
    db_setup.main(["seed"])
    db_setup.main(["seed", "--force"])

    assert capsys.readouterr().out.count("Seed data inserted.") == 2
