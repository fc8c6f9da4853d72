"""
Integration tests for the command-line scripts.
"""

import subprocess
import sys
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

# Add src and scripts to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "scripts"))

import generate_report
import init_database
import list_sessions

from resale_dashboard.config import clear_settings_cache
from resale_dashboard.storage import get_backend

SCRIPTS_DIR = Path(__file__).parent.parent.parent / "scripts"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep scripts away from any local config or default database."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
    monkeypatch.setenv("SQLITE_DB_PATH", str(tmp_path / "default.db"))
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def seeded_db(temp_db_path: Path, seed_sample_rows) -> Path:
    backend = get_backend("sqlite", db_path=temp_db_path)
    backend.initialize()
    seed_sample_rows(backend)
    backend.close()
    return temp_db_path


class TestInitDatabase:
    def test_creates_tables(self, temp_db_path):
        assert init_database.main(["--db-path", str(temp_db_path)]) == 0

        backend = get_backend("sqlite", db_path=temp_db_path)
        assert backend.table_exists("products")
        assert backend.get_table_row_count("purchase_sessions") == 0
        backend.close()

    def test_sample_data(self, temp_db_path, capsys):
        assert init_database.main(["--db-path", str(temp_db_path), "--sample-data"]) == 0

        backend = get_backend("sqlite", db_path=temp_db_path)
        assert backend.get_table_row_count("purchase_sessions") == 3
        assert backend.get_table_row_count("stores") == len(init_database.SAMPLE_STORES)
        assert backend.get_table_row_count("products") > 0
        backend.close()
        assert "Database ready" in capsys.readouterr().out

    def test_sample_data_is_repeatable(self, tmp_path):
        counts = []
        for name in ("one.db", "two.db"):
            backend = get_backend("sqlite", db_path=tmp_path / name)
            backend.initialize()
            counts.append(init_database.seed_sample_data(backend, today=date(2026, 10, 18)))
            backend.close()

        assert counts[0] == counts[1]


class TestListSessions:
    def test_lists_sessions(self, seeded_db, capsys):
        assert list_sessions.main(["--db-path", str(seeded_db)]) == 0

        out = capsys.readouterr().out
        assert "all=2" in out
        assert out.index("October trip") < out.index("September trip")
        assert "Registered 4/6 (67%)" in out

    def test_status_filter_and_expand(self, seeded_db, capsys):
        code = list_sessions.main(
            ["--db-path", str(seeded_db), "--status", "active", "--expand", "session-oct"]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "September trip" not in out
        assert "Harbor Wholesale" in out
        assert "Eastside Recycle" in out

    def test_monthly_and_break_even(self, seeded_db, capsys):
        code = list_sessions.main(
            ["--db-path", str(seeded_db), "--monthly", "--break-even"]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "Monthly sales:" in out
        assert "2026-10" in out
        assert "Break-even status:" in out
        assert "Vintage radio" in out

    def test_empty_database(self, temp_db_path, capsys):
        assert list_sessions.main(["--db-path", str(temp_db_path)]) == 0

        assert "No sessions found" in capsys.readouterr().out


class TestGenerateReport:
    def test_console_report(self, seeded_db, capsys):
        code = generate_report.main(
            [
                "--db-path", str(seeded_db),
                "--start-date", "2026-10-01",
                "--end-date", "2026-10-31",
            ]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "2026-10-01 ~ 2026-10-31" in out
        assert "¥7,000" in out
        assert "Vintage radio" in out

    def test_csv_export(self, seeded_db, tmp_path):
        output = tmp_path / "reports" / "october.csv"

        code = generate_report.main(
            [
                "--db-path", str(seeded_db),
                "--start-date", "2026-10-01",
                "--end-date", "2026-10-31",
                "--format", "csv",
                "--output", str(output),
            ]
        )

        assert code == 0
        categories = pd.read_csv(output.with_name("october_categories.csv"))
        assert list(categories["name"]) == ["Electronics", "Apparel"]

    @pytest.mark.parametrize("fmt", ["pdf", "xlsx"])
    def test_document_formats_print_notice(self, seeded_db, capsys, fmt):
        code = generate_report.main(["--db-path", str(seeded_db), "--format", fmt])

        assert code == 0
        assert "not implemented" in capsys.readouterr().out

    def test_csv_requires_output(self, seeded_db):
        with pytest.raises(SystemExit):
            generate_report.main(["--db-path", str(seeded_db), "--format", "csv"])

    def test_cli_help(self):
        result = subprocess.run(
            [sys.executable, str(SCRIPTS_DIR / "generate_report.py"), "--help"],
            capture_output=True,
            text=True,
        )

        assert result.returncode == 0
        assert "--start-date" in result.stdout
