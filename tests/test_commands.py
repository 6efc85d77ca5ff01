"""Tests for audittrail CLI commands."""

import json
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from typer.testing import CliRunner

from audittrail import __version__
from audittrail.cli import app
from audittrail.core.audit import Audit, AuditConfiguration, AuditEntry, save_changes
from audittrail.core.database import Base
from sample_models import AppBase, Customer


runner = CliRunner()


@pytest.fixture
def database_url(temp_dir: Path) -> str:
    """URL of an empty SQLite file database."""
    return f"sqlite:///{temp_dir / 'audit.db'}"


@pytest.fixture
def populated_url(database_url: str) -> str:
    """Database holding an added and a modified customer entry."""
    engine = create_engine(database_url)
    AppBase.metadata.create_all(engine)
    Base.metadata.create_all(engine)
    configuration = AuditConfiguration(auto_save_set=AuditEntry)
    try:
        with Session(engine, expire_on_commit=False) as session:
            customer = Customer(name="Ada", email="ada@x.io")
            session.add(customer)
            save_changes(session, Audit(author="alice", configuration=configuration))
            session.commit()

            customer.email = "ada@lovelace.io"
            save_changes(session, Audit(author="bob", configuration=configuration))
            session.commit()
    finally:
        engine.dispose()
    return database_url


class TestVersion:
    """Tests for the --version flag."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestInitDbCommand:
    """Tests for audittrail init-db."""

    def test_creates_audit_tables(self, database_url: str) -> None:
        result = runner.invoke(app, ["init-db", "--database-url", database_url])

        assert result.exit_code == 0, result.stdout
        assert "audit_entries" in result.stdout
        assert "json_audit_entries" in result.stdout
        assert "4 tables" in result.stdout

    def test_is_idempotent(self, database_url: str) -> None:
        runner.invoke(app, ["init-db", "-d", database_url])
        result = runner.invoke(app, ["init-db", "-d", database_url])

        assert result.exit_code == 0


class TestListCommand:
    """Tests for audittrail list."""

    def test_empty_database(self, database_url: str) -> None:
        runner.invoke(app, ["init-db", "-d", database_url])

        result = runner.invoke(app, ["list", "-d", database_url])

        assert result.exit_code == 0
        assert "No audit entries found" in result.stdout

    def test_lists_entries(self, populated_url: str) -> None:
        result = runner.invoke(app, ["list", "-d", populated_url])

        assert result.exit_code == 0, result.stdout
        assert "Audit Entries (2 of 2)" in result.stdout
        assert "EntityAdded" in result.stdout
        assert "EntityModified" in result.stdout

    def test_author_filter(self, populated_url: str) -> None:
        result = runner.invoke(app, ["list", "-d", populated_url, "--author", "bob"])

        assert "Audit Entries (1 of 1)" in result.stdout
        assert "EntityAdded" not in result.stdout

    def test_missing_tables_fails(self, database_url: str) -> None:
        result = runner.invoke(app, ["list", "-d", database_url])

        assert result.exit_code == 1
        assert "Could not read audit entries" in result.stdout


class TestShowCommand:
    """Tests for audittrail show."""

    def test_table_output(self, populated_url: str) -> None:
        result = runner.invoke(app, ["show", "2", "-d", populated_url])

        assert result.exit_code == 0, result.stdout
        assert "EntityModified" in result.stdout
        assert "ada@lovelace.io" in result.stdout

    def test_json_output(self, populated_url: str) -> None:
        result = runner.invoke(app, ["show", "2", "-d", populated_url, "--format", "json"])

        data = json.loads(result.stdout)
        assert data["state"] == "EntityModified"
        assert data["created_by"] == "bob"
        assert data["properties"] == [
            {
                "relation_name": None,
                "property_name": "email",
                "old_value": "ada@x.io",
                "new_value": "ada@lovelace.io",
            }
        ]

    def test_xml_output(self, populated_url: str) -> None:
        result = runner.invoke(app, ["show", "1", "-d", populated_url, "-f", "xml"])

        root = ET.fromstring(result.stdout)
        names = [e.get("name") for e in root.findall("property")]
        assert "name" in names
        assert "password_hash" not in names

    def test_missing_entry(self, populated_url: str) -> None:
        result = runner.invoke(app, ["show", "999", "-d", populated_url])

        assert result.exit_code == 1
        assert "not found" in result.stdout
