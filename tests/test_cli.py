"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from erd_modeler.cli import main

MODEL = {
    "id": "m1",
    "name": "Shop",
    "targetDatabase": "postgresql",
    "entities": [
        {"id": "c", "name": "Customer", "description": "Buyers",
         "attributes": [{"id": "c1", "name": "id", "type": "INT", "isPrimaryKey": True}]},
        {"id": "o", "name": "Order", "description": "Purchases", "attributes": [
            {"id": "o1", "name": "id", "type": "INT", "isPrimaryKey": True},
            {"id": "o2", "name": "customer_id", "type": "INT", "isForeignKey": True},
        ]},
        {"id": "n", "name": "Note", "attributes": []},
    ],
    "relationships": [{"id": "r1", "sourceEntityId": "c", "targetEntityId": "o"}],
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "model.json"
    path.write_text(json.dumps(MODEL))
    return path


class TestDDLCommand:
    """Tests for `erd-modeler ddl`."""

    def test_writes_sql_file(self, runner, model_file, tmp_path):
        out = tmp_path / "schema.sql"
        result = runner.invoke(main, ["ddl", str(model_file), "-d", "mysql", "-o", str(out)])

        assert result.exit_code == 0, result.output
        sql = out.read_text()
        assert "CREATE TABLE `customer` (" in sql
        assert "fk_order_customer_1" in sql

    def test_flags_map_to_options(self, runner, model_file, tmp_path):
        out = tmp_path / "schema.sql"
        result = runner.invoke(
            main,
            ["ddl", str(model_file), "-o", str(out), "--drop", "--no-foreign-keys", "--schema-name", "sales"],
        )

        assert result.exit_code == 0, result.output
        sql = out.read_text()
        assert 'DROP TABLE IF EXISTS "sales"."customer";' in sql
        assert "ALTER TABLE" not in sql

    def test_dialect_from_environment(self, runner, model_file):
        result = runner.invoke(main, ["ddl", str(model_file)], env={"ERD_MODELER_DIALECT": "sqlserver"})
        assert result.exit_code == 0, result.output
        assert "CREATE TABLE [customer] (" in result.output

    def test_invalid_model_reports_error(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"name": "Bad", "targetDatabase": "db2"}))

        result = runner.invoke(main, ["ddl", str(bad)])
        assert result.exit_code == 1
        assert "Invalid target database" in result.output


class TestLayoutCommand:
    """Tests for `erd-modeler layout`."""

    def test_smart_layout(self, runner, model_file, tmp_path):
        out = tmp_path / "positioned.json"
        result = runner.invoke(main, ["layout", str(model_file), "-o", str(out)])

        assert result.exit_code == 0, result.output
        entities = json.loads(out.read_text())["entities"]
        assert (entities[0]["x"], entities[0]["y"]) == (400, 300)
        assert entities[2]["y"] == 700

    def test_grid_layout(self, runner, model_file, tmp_path):
        out = tmp_path / "positioned.json"
        result = runner.invoke(main, ["layout", str(model_file), "-m", "grid", "--per-row", "2", "-o", str(out)])

        assert result.exit_code == 0, result.output
        entities = json.loads(out.read_text())["entities"]
        assert [(e["x"], e["y"]) for e in entities[:2]] == [(50, 50), (350, 50)]
        assert entities[2]["x"] == 50


class TestImportSQLCommand:
    """Tests for `erd-modeler import-sql`."""

    def test_imports_tables(self, runner, tmp_path):
        sql_file = tmp_path / "legacy.sql"
        sql_file.write_text(
            "CREATE TABLE users (id INT PRIMARY KEY);\n"
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT REFERENCES users(id));\n"
        )
        out = tmp_path / "model.json"
        result = runner.invoke(main, ["import-sql", str(sql_file), "-o", str(out)])

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["name"] == "legacy"
        assert [e["name"] for e in data["entities"]] == ["users", "orders"]
        assert len(data["relationships"]) == 1


class TestValidateCommand:
    """Tests for `erd-modeler validate`."""

    def test_errors_set_exit_code(self, runner, model_file):
        result = runner.invoke(main, ["validate", str(model_file)])

        assert result.exit_code == 1
        assert '[ERROR] Primary Keys: Entity "Note" has no primary key defined' in result.output

    def test_clean_model(self, runner, tmp_path):
        clean = dict(MODEL, entities=MODEL["entities"][:2])
        path = tmp_path / "clean.json"
        path.write_text(json.dumps(clean))

        result = runner.invoke(main, ["validate", str(path)])
        assert result.exit_code == 0, result.output
        assert "No issues found" in result.output
