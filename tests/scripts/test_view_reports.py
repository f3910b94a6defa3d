"""
Tests for the view_reports command-line entry point.

Covers:
- Text and JSON output from the demo dataset
- Section selection
- Argument errors (exit 2) and load failures (exit 1)
- CSV and database sources
"""

import json

import pytest

from portfolio_ingestion.exporter import export_directory
from portfolio_ingestion.seed import build_demo_store
from portfolio_kernel.db.engine import reset_engine
from portfolio_modules.reporting import ReportSection
from scripts.view_reports import main, parse_args, selected_sections


class TestArguments:
    """Argument validation and section selection."""

    def test_defaults(self):
        args = parse_args([])

        assert args.source == "demo"
        assert args.config == "default"
        assert selected_sections(args) == list(ReportSection)

    def test_sections_in_display_order(self):
        args = parse_args(["--section", "views", "--section", "integrity", "--section", "views"])
        assert selected_sections(args) == [ReportSection.INTEGRITY, ReportSection.VIEWS]

    @pytest.mark.parametrize("argv", [
        ["--source", "ftp"],
        ["--section", "ledger"],
        ["--source", "csv"],
        ["--seed"],
    ])
    def test_usage_errors(self, argv, capsys):
        assert main(argv) == 2
        assert "usage:" in capsys.readouterr().err


class TestDemoSource:
    """Reports printed from the bundled dataset."""

    def test_text_report(self, capsys):
        assert main([]) == 0

        out = capsys.readouterr().out
        assert "Finance Reporting" in out
        assert "INTEGRITY VIOLATIONS" in out
        assert "DATA QUALITY CHECKS" in out
        assert "v_ProjectsOnBudget: 50 of 50 on budget" in out
        assert "KPI DEFINITIONS" in out

    def test_single_section(self, capsys):
        assert main(["--section", "budget"]) == 0

        out = capsys.readouterr().out
        assert "BUDGET VS ACTUAL" in out
        assert "DATA QUALITY CHECKS" not in out

    def test_json_report(self, capsys):
        assert main(["--json", "--section", "views", "--config", "strict"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["metadata"]["source"] == "demo"
        assert payload["metadata"]["entity_name"] == "Finance Reporting (month-end review)"
        assert payload["metadata"]["snapshot_id"] == build_demo_store().snapshot_id
        assert payload["views"]["projects_on_budget"]["projects_on_budget"] == 50
        assert "budget_variance" not in payload
        assert payload["summary"]["error_count"] == 0


class TestLoadFailures:
    """Unreadable configuration or sources exit with 1."""

    def test_missing_config_set(self, capsys):
        assert main(["--config", "quarterly"]) == 1
        assert "Configuration set not found" in capsys.readouterr().err

    def test_missing_config_file(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "nope.yaml")]) == 1
        assert "ERROR" in capsys.readouterr().err

    def test_invalid_threshold(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("thresholds:\n  spend_outlier_multiplier: 0\n")

        assert main(["--config", str(path)]) == 1
        assert "INVALID_THRESHOLD" in capsys.readouterr().err

    def test_missing_csv_dir(self, tmp_path, capsys):
        assert main(["--source", "csv", "--csv-dir", str(tmp_path / "missing")]) == 1
        assert "SOURCE_FORMAT_ERROR" in capsys.readouterr().err


class TestFileAndDatabaseSources:
    """CSV directories and databases produce the same report as the demo."""

    def test_csv_source(self, tmp_path, capsys):
        export_directory(build_demo_store(), tmp_path)

        assert main(["--source", "csv", "--csv-dir", str(tmp_path), "--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["metadata"]["source"] == "csv"
        assert payload["metadata"]["snapshot_id"] == build_demo_store().snapshot_id

    def test_csv_rejections_reported(self, tmp_path, capsys):
        (tmp_path / "spend_log.csv").write_text(
            "entry_id,project_id,spend_date,category,amount\nE1,P1,2025-01-10,Labor,ten\n",
            encoding="utf-8",
        )

        assert main(["--source", "csv", "--csv-dir", str(tmp_path), "--section", "kpis"]) == 0
        assert "REJECTED spend_log.csv row 1: amount" in capsys.readouterr().err

    def test_database_seed_and_report(self, tmp_path, capsys):
        url = f"sqlite:///{tmp_path / 'portfolio.db'}"
        try:
            assert main(["--source", "db", "--database-url", url, "--seed", "--json"]) == 0
            first = json.loads(capsys.readouterr().out)
            assert main(["--source", "db", "--database-url", url, "--seed", "--json"]) == 0
            captured = capsys.readouterr()
        finally:
            reset_engine()

        assert first["metadata"]["source"] == "db"
        assert dict(first["metadata"]["row_counts"]) == build_demo_store().row_counts()
        assert "Seeded 0 rows." in captured.err
        assert json.loads(captured.out)["summary"] == first["summary"]
