"""
Report Builder Module
=====================

Writes delimited-text reports for the account procedures.

Reports:
- Account reports: one row per account (inactive sweep, disabled report)
- Result reports: one row per attempted mutation (bulk creation)

Design Decisions:
-----------------
1. pandas handles quoting and delimiters
2. Column order is fixed so reports from different runs line up
3. Default file names carry a timestamp so runs never overwrite each other
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from ..model.schemas import AccountRecord, ItemResult


ACCOUNT_COLUMNS = ["SamAccountName", "DisplayName", "LastLogonDate", "DistinguishedName"]
RESULT_COLUMNS = ["Item", "Success", "Message"]


class ReportBuilder:
    """Writes account and result reports.

    Usage:
        builder = ReportBuilder(output_dir="output")
        path = builder.write_accounts(disabled, prefix="inactive_disabled")
    """

    def __init__(self, output_dir: str = "output", delimiter: str = ","):
        """Initialize the report builder.

        Args:
            output_dir: Directory for report files without an explicit path
            delimiter: Field delimiter
        """
        self.output_dir = Path(output_dir)
        self.delimiter = delimiter

    def default_path(self, prefix: str) -> Path:
        """Timestamped report path in the output directory."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.output_dir / f"{prefix}_{timestamp}.csv"

    def _write(self, rows: list[dict], columns: list[str], path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        df = pd.DataFrame(rows, columns=columns)
        df.to_csv(path, sep=self.delimiter, index=False)
        return path

    def write_accounts(
        self,
        accounts: list[AccountRecord],
        path: Optional[str] = None,
        prefix: str = "accounts"
    ) -> Path:
        """Write one row per account."""
        target = Path(path) if path else self.default_path(prefix)
        return self._write([a.to_dict() for a in accounts], ACCOUNT_COLUMNS, target)

    def write_results(
        self,
        results: list[ItemResult],
        path: Optional[str] = None,
        prefix: str = "results"
    ) -> Path:
        """Write one row per attempted mutation."""
        target = Path(path) if path else self.default_path(prefix)
        return self._write([r.to_dict() for r in results], RESULT_COLUMNS, target)


def summarize_results(results: list[ItemResult]) -> str:
    """One-line summary of per-item outcomes."""
    succeeded = sum(1 for r in results if r.success)
    skipped = sum(1 for r in results if r.skipped)
    failed = len(results) - succeeded - skipped
    return f"{succeeded} succeeded, {failed} failed, {skipped} skipped"
