"""End-to-end tests for the customer-analytics command line."""

import json
from datetime import datetime

import pytest

from customer_analytics.cli import run
from customer_analytics.foundation.importer import customers_to_payload, load_customers
from customer_analytics.synthetic import generate_sample_customers


@pytest.fixture
def customers_file(tmp_path):
    customers = generate_sample_customers(
        60, 15, start=datetime(2023, 7, 1), end=datetime(2024, 6, 30), seed=21
    )
    path = tmp_path / "customers.json"
    path.write_text(json.dumps(customers_to_payload(customers)))
    return path


def test_generate_sample_writes_loadable_file(tmp_path):
    output = tmp_path / "sample.json"
    exit_code = run(["generate-sample", str(output), "--customers", "30", "--seed", "5"])

    assert exit_code == 0
    customers = load_customers(output)
    assert len(customers) == 30
    assert customers[0].customer_id == "cust001"


def test_analyze_writes_report(customers_file, tmp_path):
    output = tmp_path / "reports" / "report.json"
    exit_code = run(
        [
            "analyze",
            str(customers_file),
            "--preset",
            "last90",
            "--today",
            "2024-06-30",
            "--output",
            str(output),
        ]
    )

    assert exit_code == 0
    report = json.loads(output.read_text())
    assert {
        "currentPeriod",
        "previousPeriod",
        "rfmComparison",
        "clvComparison",
        "paretoComparison",
        "segmentSummary",
    } <= set(report)
    assert report["currentPeriod"]["customerCount"] > 0
    assert len(report["rfmComparison"]["segmentMigration"]) == 9


def test_analyze_to_stdout_with_custom_periods(customers_file, capsys):
    exit_code = run(
        [
            "analyze",
            str(customers_file),
            "--current-start",
            "2024-04-01",
            "--current-end",
            "2024-06-30",
            "--previous-start",
            "2024-01-01",
            "--previous-end",
            "2024-03-31",
            "--evaluation-instant",
            "2024-07-01T00:00:00",
            "--weights",
            "2",
            "1",
            "1",
            "--acquisition-cost",
            "15",
        ]
    )

    assert exit_code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["currentPeriod"]["period"]["label"] == "Apr 1, 2024 - Jun 30, 2024"
    assert report["previousPeriod"]["period"]["label"] == "Jan 1, 2024 - Mar 31, 2024"


def test_analyze_csv_input(tmp_path, capsys):
    path = tmp_path / "transactions.csv"
    path.write_text(
        "customer_id,name,email,transaction_id,date,amount,items\n"
        "C1,Ann,ann@example.com,T1,2024-06-10,100.00,1\n"
        "C1,Ann,ann@example.com,T2,2024-05-10,50.00,1\n"
        "C2,Bob,,T3,2024-05-20,75.00,2\n"
    )
    exit_code = run(["analyze", str(path), "--preset", "this_month", "--today", "2024-06-30"])

    assert exit_code == 0
    report = json.loads(capsys.readouterr().out)
    lost = [c["id"] for c in report["rfmComparison"]["customerChanges"] if c["isLost"]]
    assert lost == ["C2"]


def test_incomplete_custom_periods_fail(customers_file):
    assert run(["analyze", str(customers_file), "--current-start", "2024-04-01"]) == 1


def test_degenerate_clv_parameters_fail(customers_file):
    exit_code = run(
        ["analyze", str(customers_file), "--churn-rate", "0", "--discount-rate", "0"]
    )
    assert exit_code == 1


def test_missing_input_file_fails(tmp_path):
    assert run(["analyze", str(tmp_path / "missing.json")]) == 1


def test_invalid_date_argument_exits_with_usage_error(customers_file):
    with pytest.raises(SystemExit) as excinfo:
        run(["analyze", str(customers_file), "--today", "30/06/2024"])
    assert excinfo.value.code == 2


def test_unwritable_output_fails(customers_file, tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    exit_code = run(
        [
            "analyze",
            str(customers_file),
            "--today",
            "2024-06-30",
            "--output",
            str(blocker / "report.json"),
        ]
    )
    assert exit_code == 1


def test_txt_input_read_as_json(tmp_path):
    path = tmp_path / "customers.txt"
    path.write_text(
        "customer_id,name,transaction_id,date,amount\n"
        "C1,Ann,T1,06/10/2024,100.00\n"
    )
    assert run(["analyze", str(path), "--today", "2024-06-30"]) == 1
