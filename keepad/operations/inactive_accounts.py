"""
Inactive Account Sweep
======================

Disables enabled user accounts that have not logged on within a threshold
and reports them.

lastLogonTimestamp replicates lazily (up to 14 days behind by default), so
the threshold should stay well above two weeks.

The report lists exactly the accounts this run disabled: candidates whose
disable failed are logged and left out.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Callable

from ..exceptions import DirectoryError
from ..model.schemas import AccountRecord
from ..reporting.report_builder import ReportBuilder


class InactiveAccountSweep:
    """Disable stale accounts and write a report of what was disabled.

    Usage:
        sweep = InactiveAccountSweep(client, days=90, reporter=ReportBuilder("output"))
        disabled = sweep.run()
        print(sweep.report_path)
    """

    def __init__(
        self,
        directory,
        days: int = 90,
        search_base: Optional[str] = None,
        include_never_logged_on: bool = False,
        dry_run: bool = False,
        reporter: Optional[ReportBuilder] = None,
        report_path: Optional[str] = None,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        if days < 1:
            raise ValueError("Inactivity threshold must be at least one day")

        self.directory = directory
        self.days = days
        self.search_base = search_base
        self.include_never_logged_on = include_never_logged_on
        self.dry_run = dry_run
        self.reporter = reporter or ReportBuilder()
        self.requested_report_path = report_path
        self.report_path: Optional[Path] = None
        self.verbose = verbose
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (now or datetime.now(timezone.utc)) - timedelta(days=self.days)

    def find_candidates(self, now: Optional[datetime] = None) -> list[AccountRecord]:
        cutoff = self.cutoff(now)
        self._log(f"[*] Searching for accounts without a logon since {cutoff:%Y-%m-%d}...")
        candidates = self.directory.find_inactive_accounts(
            cutoff,
            search_base=self.search_base,
            include_never_logged_on=self.include_never_logged_on
        )
        self._log(f"[*] Found {len(candidates)} inactive account(s)")
        return candidates

    def run(self, now: Optional[datetime] = None) -> list[AccountRecord]:
        """Disable every candidate and report the ones that were disabled.

        Returns:
            The accounts disabled by this run (candidates in dry-run mode)
        """
        candidates = self.find_candidates(now)

        if self.dry_run:
            for account in candidates:
                last = account.to_dict()["LastLogonDate"]
                self._log(f"    [dry run] would disable {account.sam_account_name} (last logon {last})")
            return candidates

        disabled = []
        for account in candidates:
            try:
                self.directory.disable_account(account)
            except DirectoryError as e:
                self._log(f"[!] Could not disable {account.sam_account_name}: {e}")
                continue
            self._log(f"[+] Disabled {account.sam_account_name}")
            disabled.append(account)

        self.report_path = self.reporter.write_accounts(
            disabled,
            path=self.requested_report_path,
            prefix="inactive_disabled"
        )
        self._log(f"[+] Disabled {len(disabled)} of {len(candidates)}; report saved to {self.report_path}")
        return disabled
