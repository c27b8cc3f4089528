"""Export of the user accounts that are currently disabled."""

from pathlib import Path
from typing import Optional, Callable

from ..reporting.report_builder import ReportBuilder


class DisabledAccountReport:
    """Query disabled accounts and write them to a delimited report."""

    def __init__(
        self,
        directory,
        search_base: Optional[str] = None,
        reporter: Optional[ReportBuilder] = None,
        report_path: Optional[str] = None,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        self.directory = directory
        self.search_base = search_base
        self.reporter = reporter or ReportBuilder()
        self.requested_report_path = report_path
        self.verbose = verbose
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def run(self) -> Path:
        """Write the report and return its path."""
        accounts = self.directory.find_disabled_accounts(self.search_base)
        self._log(f"[*] Found {len(accounts)} disabled account(s)")
        path = self.reporter.write_accounts(
            accounts,
            path=self.requested_report_path,
            prefix="disabled_accounts"
        )
        self._log(f"[+] Report saved to {path}")
        return path
