"""Integration tests for the analytics command line entry point.

Tests the complete workflow from a JSON snapshot file through the CLI to
the JSON report, on stdout or in an output file.
"""

import json
import logging

import pytest

from commerce_analytics.cli import run_analytics_cli


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The CLI reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def snapshot_json(tmp_path):
    """Create a small snapshot JSON file for testing."""
    payload = {
        "customers": [
            {"customer_id": "A", "customer_name": "Alice", "country": "USA", "customer_segment": "Premium"},
            {"customer_id": "B", "customer_name": "Bob", "country": "UK"},
        ],
        "products": [
            {"product_id": "P1", "product_name": "Widget", "category": "Electronics", "unit_price": 50, "cost_price": 20},
            {"product_id": "P2", "product_name": "Desk", "category": "Furniture", "unit_price": 300, "cost_price": 180},
        ],
        "orders": [
            {"order_id": "O1", "customer_id": "A", "order_date": "2024-01-01", "order_status": "Completed"},
            {"order_id": "O2", "customer_id": "A", "order_date": "2024-02-01", "order_status": "Completed"},
            {"order_id": "O3", "customer_id": "B", "order_date": "2024-01-15", "order_status": "Completed"},
            {"order_id": "O4", "customer_id": "B", "order_date": "2024-02-10", "order_status": "Cancelled"},
        ],
        "order_items": [
            {"order_id": "O1", "product_id": "P1", "quantity": 2, "unit_price": "50.00"},
            {"order_id": "O2", "product_id": "P2", "quantity": 1, "unit_price": "300.00"},
            {"order_id": "O3", "product_id": "P1", "quantity": 1, "unit_price": "50.00"},
            {"order_id": "O4", "product_id": "P2", "quantity": 1, "unit_price": "300.00", "discount_percent": 15},
        ],
        "categories": [
            {"category_id": "1", "category_name": "Electronics"},
            {"category_id": "2", "category_name": "Computers", "parent_category_id": "1"},
        ],
    }
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestAnalyticsCLI:
    """Test the analytics CLI command."""

    def test_report_written_to_file(self, snapshot_json, tmp_path, monkeypatch):
        """A full run writes every table to the output file."""
        monkeypatch.chdir(tmp_path)
        exit_code = run_analytics_cli(
            [str(snapshot_json), "--as-of", "2024-03-15", "--output", "out/report.json"]
        )

        assert exit_code == 0
        report = json.loads((tmp_path / "out" / "report.json").read_text(encoding="utf-8"))
        assert report["as_of"] == "2024-03-15"
        assert [row["customer_id"] for row in report["customer_lifetime_value"]] == ["A", "B"]
        assert report["customer_lifetime_value"][0]["lifetime_value"] == 400.0
        assert [row["customer_id"] for row in report["purchase_forecasts"]] == ["A"]
        assert report["purchase_forecasts"][0]["customer_status"] == "Due for Reorder"
        assert report["category_hierarchy"][1]["full_path"] == "Electronics > Computers"

    def test_report_on_stdout(self, snapshot_json, tmp_path, monkeypatch, capsys):
        """Without --output the report is printed and logs stay on stderr."""
        monkeypatch.chdir(tmp_path)
        exit_code = run_analytics_cli(
            [
                str(snapshot_json),
                "--as-of",
                "2024-03-15",
                "--analysis",
                "sales_cube",
                "--analysis",
                "customer_lifetime_value",
            ]
        )

        assert exit_code == 0
        report = json.loads(capsys.readouterr().out)
        assert set(report) == {"as_of", "customer_lifetime_value", "sales_cube"}
        assert report["sales_cube"][-1]["total_revenue"] == 450.0

    def test_dense_retention_flag(self, snapshot_json, tmp_path, monkeypatch, capsys):
        """--dense-retention fills months up to the as-of date."""
        monkeypatch.chdir(tmp_path)
        run_analytics_cli(
            [str(snapshot_json), "--as-of", "2024-04-30", "--analysis", "cohort_retention", "--dense-retention"]
        )
        report = json.loads(capsys.readouterr().out)
        assert [row["months_since_cohort"] for row in report["cohort_retention"]] == [0, 1, 2, 3]

    def test_integrity_violation_exit_code(self, snapshot_json, tmp_path, monkeypatch, capsys):
        """A dangling reference exits with status 1 and no report."""
        payload = json.loads(snapshot_json.read_text(encoding="utf-8"))
        payload["order_items"][0]["product_id"] = "P404"
        snapshot_json.write_text(json.dumps(payload), encoding="utf-8")
        monkeypatch.chdir(tmp_path)

        exit_code = run_analytics_cli([str(snapshot_json), "--as-of", "2024-03-15"])

        assert exit_code == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "snapshot_integrity_violation" in captured.err

    def test_output_outside_cwd_rejected(self, snapshot_json, tmp_path, monkeypatch):
        """Reports cannot be written outside the working directory."""
        workdir = tmp_path / "work"
        workdir.mkdir()
        monkeypatch.chdir(workdir)
        with pytest.raises(ValueError, match="current working directory"):
            run_analytics_cli([str(snapshot_json), "--output", str(tmp_path / "report.json")])

    def test_unknown_analysis_rejected(self, snapshot_json):
        """argparse rejects analyses outside the known set."""
        with pytest.raises(SystemExit):
            run_analytics_cli([str(snapshot_json), "--analysis", "lifetime"])

    def test_json_logs(self, snapshot_json, tmp_path, monkeypatch, capsys):
        """--json-logs renders log lines as JSON on stderr."""
        monkeypatch.chdir(tmp_path)
        run_analytics_cli(
            [str(snapshot_json), "--as-of", "2024-03-15", "--output", "r.json", "--json-logs"]
        )
        lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
        events = [json.loads(line)["event"] for line in lines]
        assert "report_written" in events
