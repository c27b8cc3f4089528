"""
ntdsutil Runner
===============

Seizes FSMO roles by feeding a generated command script to ntdsutil.

The script connects ntdsutil to the controller that will take the role and
issues a single seize command. ntdsutil runs to completion before control
returns; there is no retry.
"""

import os
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Callable

from ..config import NtdsutilConfig
from ..exceptions import ToolError
from ..model.schemas import FSMORole
from .probe import CREATE_NO_WINDOW


def build_seize_script(role: FSMORole, target_server: str) -> str:
    """Build the ntdsutil command script seizing role onto target_server."""
    lines = [
        "popups off",
        "roles",
        "connections",
        f"connect to server {target_server}",
        "quit",
        role.seize_command,
        "quit",
        "quit",
    ]
    return "\n".join(lines) + "\n"


class NtdsutilRunner:
    """Runs ntdsutil with a generated command script on standard input.

    Usage:
        runner = NtdsutilRunner(NtdsutilConfig())
        output = runner.seize(FSMORole.PDC_EMULATOR, "DC02")
    """

    def __init__(
        self,
        config: Optional[NtdsutilConfig] = None,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None
    ):
        self.config = config or NtdsutilConfig()
        self.verbose = verbose
        self.progress_callback = progress_callback

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    def write_script(self, role: FSMORole, target_server: str) -> Path:
        """Write the command script to a temporary file and return its path."""
        fd, path = tempfile.mkstemp(
            prefix=f"seize_{role.value.lower()}_",
            suffix=".txt",
            dir=self.config.script_dir
        )
        with os.fdopen(fd, "w", encoding="ascii") as f:
            f.write(build_seize_script(role, target_server))
        return Path(path)

    def seize(self, role: FSMORole, target_server: str) -> str:
        """Seize one role onto target_server.

        Returns:
            ntdsutil's console output

        Raises:
            ToolError: if ntdsutil is missing, times out or exits non-zero
        """
        script = self.write_script(role, target_server)
        self._log(f"[*] Running {self.config.executable} for {role.value} ({script.name})")

        try:
            with open(script, "r", encoding="ascii") as stdin:
                result = subprocess.run(
                    [self.config.executable],
                    stdin=stdin,
                    capture_output=True,
                    text=True,
                    timeout=self.config.timeout,
                    creationflags=CREATE_NO_WINDOW
                )
        except FileNotFoundError:
            raise ToolError(f"{self.config.executable} not found; run on a domain controller or RSAT host")
        except subprocess.TimeoutExpired as e:
            raise ToolError(f"{self.config.executable} timed out seizing {role.value}", output=str(e.output or ""))
        finally:
            if not self.config.keep_script:
                script.unlink(missing_ok=True)

        output = (result.stdout or "") + (result.stderr or "")
        if result.returncode != 0:
            raise ToolError(
                f"{self.config.executable} exited with code {result.returncode} seizing {role.value}",
                output=output
            )
        return output
