"""
Bulk User Creation Module
=========================

Creates one user account per spreadsheet row.

Supported inputs:
- CSV (delimiter configurable)
- Excel workbooks (.xlsx / .xls, first sheet)

Rows are independent: a row with missing columns, a logon name that
already exists, or a rejected creation is logged and the next row is
processed.
"""

from pathlib import Path
from typing import Optional, Callable

import pandas as pd

from ..exceptions import DirectoryError
from ..model.schemas import UserRow, ItemResult


EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


def read_user_records(path: str, delimiter: str = ",") -> list[dict]:
    """Read spreadsheet rows as dicts of strings (blank cells are "")."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if file_path.suffix.lower() in EXCEL_SUFFIXES:
        df = pd.read_excel(file_path, dtype=str, keep_default_na=False)
    else:
        df = pd.read_csv(file_path, sep=delimiter, dtype=str, keep_default_na=False)

    return df.to_dict(orient="records")


class BulkUserCreator:
    """Create user accounts from a spreadsheet.

    Usage:
        creator = BulkUserCreator(client, default_container="OU=Staff,DC=corp,DC=local")
        results = creator.run("new_users.csv")
    """

    def __init__(
        self,
        directory,
        default_container: Optional[str] = None,
        change_password_at_logon: bool = True,
        delimiter: str = ",",
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        self.directory = directory
        self.default_container = default_container or directory.default_user_container
        self.change_password_at_logon = change_password_at_logon
        self.delimiter = delimiter
        self.verbose = verbose
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def create(self, record: dict, line: int) -> ItemResult:
        """Create the account for one record."""
        try:
            row = UserRow.from_record(
                record,
                default_container=self.default_container,
                upn_suffix=self.directory.domain
            )
        except ValueError as e:
            self._log(f"[!] Row {line}: {e}")
            return ItemResult(f"row {line}", False, str(e))

        try:
            existing = self.directory.find_user(row.sam_account_name)
            if existing:
                self._log(f"[!] Row {line}: {row.sam_account_name} already exists ({existing})")
                return ItemResult(row.sam_account_name, False, f"already exists: {existing}", skipped=True)

            dn = self.directory.create_user(row, change_password_at_logon=self.change_password_at_logon)
        except DirectoryError as e:
            self._log(f"[!] Row {line}: could not create {row.sam_account_name}: {e}")
            return ItemResult(row.sam_account_name, False, str(e))

        self._log(f"[+] Created {row.sam_account_name} ({dn})")
        return ItemResult(row.sam_account_name, True, dn)

    def run(self, input_path: str) -> list[ItemResult]:
        """Create one account per row of input_path."""
        records = read_user_records(input_path, self.delimiter)
        self._log(f"[*] Creating {len(records)} user(s) from {input_path}...")

        # Line 1 is the header row
        return [self.create(record, line) for line, record in enumerate(records, start=2)]
