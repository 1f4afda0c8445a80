"""Command-line interface tests."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pyjson2sql._errors import ConfigurationError
from pyjson2sql.cli import app, load_mapping, load_overrides
from tests.conftest import fetch_all, write_json

runner = CliRunner()


def _json_lines(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


@pytest.fixture
def mapping_file(tmp_path) -> str:
    return write_json(tmp_path / "mapping.json", {"id": "pk", "name": "label"})


class TestConfigFiles:
    def test_load_mapping(self, mapping_file):
        assert load_mapping(Path(mapping_file)) == {"id": "pk", "name": "label"}

    def test_mapping_must_be_object(self, tmp_path):
        path = tmp_path / "m.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigurationError, match="mapping file"):
            load_mapping(path)

    def test_mapping_unreadable(self, tmp_path):
        with pytest.raises(ConfigurationError, match="could not be loaded"):
            load_mapping(tmp_path / "missing.json")

    def test_overrides_default(self):
        assert load_overrides(None) == {"defaults": {}, "forced": {}, "dynamic": {}}

    def test_overrides_sections(self, tmp_path):
        path = tmp_path / "o.json"
        path.write_text(json.dumps({"forced": {"status": "x"}, "dynamic": {"ref": "{{UUID}}"}}))
        assert load_overrides(path) == {
            "defaults": {},
            "forced": {"status": "x"},
            "dynamic": {"ref": "{{UUID}}"},
        }

    def test_overrides_bad_section(self, tmp_path):
        path = tmp_path / "o.json"
        path.write_text(json.dumps({"defaults": [1]}))
        with pytest.raises(ConfigurationError, match="'defaults'"):
            load_overrides(path)


class TestInspectionCommands:
    def test_tables(self, users_db):
        result = runner.invoke(app, ["tables", users_db])
        assert result.exit_code == 0
        assert result.output.strip() == "users"

    def test_describe(self, items_db):
        result = runner.invoke(app, ["describe", items_db, "items"])
        assert result.exit_code == 0
        assert [c["name"] for c in json.loads(result.output)["columns"]] == ["pk", "label"]

    def test_describe_missing_table(self, items_db):
        result = runner.invoke(app, ["describe", items_db, "nope"])
        assert result.exit_code == 1
        assert "Error: table not found" in result.output

    def test_discover(self, rows_json):
        result = runner.invoke(app, ["discover", rows_json])
        assert result.exit_code == 0
        assert [p["path"] for p in _json_lines(result.output)] == [
            "rows[]",
            "rows[].id",
            "rows[].name",
        ]

    def test_discover_stream(self, rows_json):
        result = runner.invoke(app, ["discover", rows_json, "--stream"])
        assert result.exit_code == 0
        assert len(_json_lines(result.output)) == 3
        assert "Discovery complete: 3 path(s)" in result.output

    def test_discover_malformed(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{")
        result = runner.invoke(app, ["discover", str(path)])
        assert result.exit_code == 1
        assert "malformed" in result.output

    def test_sample(self, rows_json):
        result = runner.invoke(app, ["sample", rows_json, "--root", "rows[]", "--limit", "1"])
        assert result.exit_code == 0
        assert json.loads(result.output) == [{"id": 1, "name": "a"}]


class TestImportCommand:
    def test_import(self, rows_json, items_db, mapping_file):
        result = runner.invoke(
            app,
            ["import", rows_json, items_db, "-t", "items", "-m", mapping_file, "-r", "rows[]"],
        )
        assert result.exit_code == 0, result.output
        assert "Done. 2 inserted, 0 failed of 2" in result.output
        assert fetch_all(items_db, "SELECT COUNT(*) FROM items") == [(2,)]

    def test_import_with_overrides(self, rows_json, items_db, tmp_path):
        mapping = write_json(tmp_path / "m.json", {"id": "pk"})
        overrides = write_json(tmp_path / "o.json", {"forced": {"label": "fixed"}})
        result = runner.invoke(
            app,
            ["import", rows_json, items_db, "-t", "items", "-m", mapping, "-r", "rows[]", "-o", overrides],
        )
        assert result.exit_code == 0, result.output
        assert fetch_all(items_db, "SELECT DISTINCT label FROM items") == [("fixed",)]

    def test_import_dry_run(self, rows_json, tmp_path, mapping_file):
        db_path = tmp_path / "never.db"
        result = runner.invoke(
            app,
            ["import", rows_json, str(db_path), "-t", "items", "-m", mapping_file, "-r", "rows[]", "--dry-run"],
        )
        assert result.exit_code == 0
        assert not db_path.exists()

    def test_import_missing_table(self, rows_json, items_db, mapping_file):
        result = runner.invoke(
            app, ["import", rows_json, items_db, "-t", "nope", "-m", mapping_file, "-r", "rows[]"]
        )
        assert result.exit_code == 1
        assert "table not found" in result.output


class TestUpdateCommand:
    def test_update(self, tmp_path, items_db, mapping_file):
        conn = sqlite3.connect(items_db)
        conn.execute("INSERT INTO items VALUES (1, 'old')")
        conn.commit()
        conn.close()
        path = write_json(tmp_path / "u.json", [{"id": 1, "name": "new"}, {"id": 9, "name": "x"}])
        result = runner.invoke(
            app,
            ["update", path, items_db, "-t", "items", "-m", mapping_file, "-k", "pk", "-c", "label"],
        )
        assert result.exit_code == 0, result.output
        assert "Done. 1 updated, 1 failed (1 not found) of 2" in result.output
        assert fetch_all(items_db, "SELECT label FROM items") == [("new",)]

    def test_update_key_not_mapped(self, rows_json, items_db, tmp_path):
        mapping = write_json(tmp_path / "m.json", {"name": "label"})
        result = runner.invoke(
            app,
            ["update", rows_json, items_db, "-t", "items", "-m", mapping, "-k", "pk", "-c", "label"],
        )
        assert result.exit_code == 1
        assert "key column is not a mapping target" in result.output
