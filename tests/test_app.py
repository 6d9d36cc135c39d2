import json

import pytest
from click.testing import CliRunner

from app import main
from tests.factories import make_log


@pytest.fixture
def db_uri(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "a.log"
    path.write_text(
        make_log(
            {"date": "2024-01-02", "status": "Failed: calib", "error_desc": "E7"},
            {"date": "2024-01-01", "status": "OK"},
            {"date": "2024-01-01", "status": "OK"},
        ),
        encoding="utf-8",
    )
    return str(path)


def run(db_uri, *args):
    return CliRunner().invoke(main, ["--db", db_uri, *args])


def test_import_and_stats(db_uri, log_file):
    result = run(db_uri, "import", log_file)
    assert result.exit_code == 0, result.output
    imported = json.loads(result.output)
    assert imported[0]["success"] is True
    assert imported[0]["count"] == 3
    assert imported[0]["file_source"] == "a.log"

    result = run(db_uri, "stats", "--file", "a.log")
    assert result.exit_code == 0, result.output
    stats = json.loads(result.output)
    assert stats["total"] == 3
    assert stats["failed_rate"] == 33.3


def test_logs_command_filters_and_sorts(db_uri, log_file):
    run(db_uri, "import", log_file)

    result = run(db_uri, "logs", "--sort-order", "asc", "--page-size", "2")
    assert result.exit_code == 0, result.output
    page = json.loads(result.output)
    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert [r["date"] for r in page["records"]] == ["2024-01-01", "2024-01-01"]

    result = run(db_uri, "logs", "--status", "failed")
    assert json.loads(result.output)["total"] == 1


def test_logs_command_rejects_bad_page(db_uri):
    result = run(db_uri, "logs", "--page", "0")
    assert result.exit_code != 0


def test_aggregate_commands(db_uri, log_file):
    run(db_uri, "import", log_file)

    trend = json.loads(run(db_uri, "trend").output)
    assert trend == [
        {"bucket": "2024-01-01", "success": 2, "failed": 0},
        {"bucket": "2024-01-02", "success": 0, "failed": 1},
    ]
    assert json.loads(run(db_uri, "top-errors").output) == [{"description": "E7", "count": 1}]
    assert json.loads(run(db_uri, "distribution", "status").output)[0] == {"category": "OK", "count": 2}
    assert json.loads(run(db_uri, "options").output)["file_sources"] == ["a.log"]


def test_folder_workflow(db_uri, log_file):
    run(db_uri, "import", log_file)

    folder = json.loads(run(db_uri, "folder-create", "Batch1").output)
    assert run(db_uri, "assign", "a.log", str(folder["id"])).exit_code == 0
    files = json.loads(run(db_uri, "files").output)
    assert files[0]["folder_id"] == folder["id"]

    assert run(db_uri, "folder-rename", str(folder["id"]), "Batch-1").exit_code == 0
    assert json.loads(run(db_uri, "folders").output)[0]["name"] == "Batch-1"

    assert run(db_uri, "delete-file", "a.log", "--yes").exit_code == 0
    assert json.loads(run(db_uri, "files").output) == []

    assert run(db_uri, "folder-delete", str(folder["id"])).exit_code == 0
    assert run(db_uri, "folder-delete", str(folder["id"])).exit_code == 1


def test_export_csv_command(db_uri, log_file, tmp_path):
    run(db_uri, "import", log_file)
    out = tmp_path / "export.csv"

    result = run(db_uri, "export-csv", "--status", "failed", "-o", str(out))

    assert result.exit_code == 0, result.output
    lines = out.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[1].startswith("2024-01-02,")
