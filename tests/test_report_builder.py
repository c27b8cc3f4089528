import pandas as pd

from keepad.model.schemas import ItemResult
from keepad.reporting.report_builder import ReportBuilder, summarize_results

from conftest import make_account


def test_write_accounts_creates_directory(tmp_path):
    builder = ReportBuilder(str(tmp_path / "out"))
    path = builder.write_accounts([make_account("jdoe")], prefix="inactive")

    assert path.parent == tmp_path / "out"
    assert path.name.startswith("inactive_") and path.suffix == ".csv"
    report = pd.read_csv(path, dtype=str, keep_default_na=False)
    assert report.to_dict(orient="records") == [{
        "SamAccountName": "jdoe",
        "DisplayName": "Jdoe",
        "LastLogonDate": "Never",
        "DistinguishedName": "CN=jdoe,OU=Staff,DC=corp,DC=local",
    }]


def test_distinguished_names_are_quoted(tmp_path):
    path = ReportBuilder(str(tmp_path)).write_accounts([make_account("jdoe")], path=str(tmp_path / "r.csv"))
    assert '"CN=jdoe,OU=Staff,DC=corp,DC=local"' in path.read_text()


def test_write_results(tmp_path):
    results = [ItemResult("jdoe", True, "CN=jdoe"), ItemResult("row 3", False, "Missing required column(s): password")]
    path = ReportBuilder(str(tmp_path), delimiter="\t").write_results(results, path=str(tmp_path / "results.tsv"))

    report = pd.read_csv(path, sep="\t", dtype=str, keep_default_na=False)
    assert list(report.columns) == ["Item", "Success", "Message"]
    assert list(report["Success"]) == ["True", "False"]


def test_summarize_results():
    results = [
        ItemResult("a", True),
        ItemResult("b", False, "boom"),
        ItemResult("c", False, "declined", skipped=True),
    ]
    assert summarize_results(results) == "1 succeeded, 1 failed, 1 skipped"
