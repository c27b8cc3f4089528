"""
Role Seizure Module
===================

Seizes FSMO roles whose holders no longer answer on the network.

Pipeline:
1. Look up the current holder of each requested role
2. Resolve holder DNS names to server names
3. Ask the operator to type the confirmation phrase
4. Probe each holder, one at a time
5. Seize every role whose holder did not answer, one ntdsutil run per role

Only unreachable holders lose their roles. A wrong confirmation phrase or a
run in which every holder answered stops before anything is seized; a
failure seizing one role does not stop the others.
"""

from typing import Optional, Callable

from ..config import ProbeConfig
from ..exceptions import ConfirmationError, NoOfflineRolesError, ToolError
from ..model.schemas import FSMORole, RoleHolder, ItemResult
from ..system.probe import is_reachable
from ..system.ntdsutil import NtdsutilRunner
from .prompts import confirm_phrase


CONFIRMATION_PHRASE = "SEIZE"


class RoleSeizure:
    """Seize offline FSMO roles onto a target controller.

    Usage:
        seizure = RoleSeizure(client, target_server="DC02")
        results = seizure.run()
    """

    def __init__(
        self,
        directory,
        target_server: str,
        roles: Optional[list[FSMORole]] = None,
        force: bool = False,
        runner: Optional[NtdsutilRunner] = None,
        probe: Optional[Callable[[str], bool]] = None,
        probe_config: Optional[ProbeConfig] = None,
        prompt: Callable[[str], str] = input,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        """Initialize the seizure.

        Args:
            directory: Connected DirectoryClient
            target_server: Controller that takes over the seized roles
            roles: Roles to consider (all five if None)
            force: Skip the confirmation prompt
            runner: ntdsutil runner
            probe: host -> bool reachability check (ping if None)
            probe_config: Settings for the default ping probe
            prompt: Function reading the operator's answer
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
        """
        self.directory = directory
        self.target_server = target_server
        self.roles = roles or list(FSMORole)
        self.force = force
        self.verbose = verbose
        self.progress_callback = progress_callback
        self.runner = runner or NtdsutilRunner(verbose=verbose, progress_callback=progress_callback)
        self.probe_config = probe_config or ProbeConfig()
        self.probe = probe or (lambda host: is_reachable(host, self.probe_config))
        self.prompt = prompt

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def lookup_holders(self) -> list[RoleHolder]:
        """Find and resolve the current holder of each requested role."""
        self._log(f"[*] Looking up holders for {len(self.roles)} role(s)...")
        holders = self.directory.get_role_holders(self.roles)
        for holder in holders:
            self._log(f"    {holder.role.value:<22} {holder.server_name or '?':<16} {holder.dns_host_name or ''}")
        return holders

    def confirm(self, holders: list[RoleHolder]) -> None:
        """Ask for the confirmation phrase.

        Raises:
            ConfirmationError: if the operator typed anything else
        """
        if self.force:
            return
        self._log(f"[!] Roles held by unreachable servers will be seized onto {self.target_server}.")
        self._log("[!] A server whose role was seized must never come back online.")
        if not confirm_phrase(CONFIRMATION_PHRASE, prompt=self.prompt):
            raise ConfirmationError("Confirmation text did not match; nothing was seized")

    def probe_holders(self, holders: list[RoleHolder]) -> list[RoleHolder]:
        """Probe each holder in turn and return the unreachable ones."""
        for holder in holders:
            if not holder.probe_target:
                self._log(f"[!] Could not identify the host holding {holder.role.value} ({holder.holder}); not seizing it")
                continue
            holder.reachable = bool(self.probe(holder.probe_target))
            state = "online" if holder.reachable else "OFFLINE"
            self._log(f"[*] {holder.probe_target}: {state} ({holder.role.value})")
        return [h for h in holders if h.is_offline]

    def seize(self, holder: RoleHolder) -> ItemResult:
        """Seize one role; tool failures become a failed result."""
        if not holder.is_offline:
            return ItemResult(holder.role.value, False, "holder is reachable", skipped=True)
        try:
            self.runner.seize(holder.role, self.target_server)
        except ToolError as e:
            self._log(f"[!] Failed to seize {holder.role.value}: {e}")
            return ItemResult(holder.role.value, False, str(e))

        self._log(f"[+] Seized {holder.role.value} from {holder.server_name} onto {self.target_server}")
        return ItemResult(holder.role.value, True, f"seized from {holder.server_name}")

    def run(self) -> list[ItemResult]:
        """Execute the full seizure.

        Raises:
            ConfirmationError: confirmation phrase mismatch
            NoOfflineRolesError: every holder answered the probe
        """
        holders = self.lookup_holders()
        self.confirm(holders)

        offline = self.probe_holders(holders)
        if not offline:
            raise NoOfflineRolesError("No roles found on offline servers; nothing to seize")

        results = [self.seize(holder) for holder in offline]
        self._log(f"[+] Seized {sum(1 for r in results if r.success)} of {len(offline)} offline role(s)")
        return results
