"""
Reachability Probe
==================

Two-packet ICMP liveness check using the system ping binary.

Design Decisions:
-----------------
1. The platform ping is used so no raw-socket privileges are needed
2. Windows ping exits 0 on "Destination host unreachable" replies, so a
   reply line carrying TTL= is required there
3. A missing binary or a hung ping counts as unreachable
"""

import os
import subprocess
from typing import Optional

from ..config import ProbeConfig


# Hide the console window when running under Windows
CREATE_NO_WINDOW = 0x08000000 if os.name == "nt" else 0


def build_ping_command(host: str, count: int = 2, timeout: int = 2, windows: Optional[bool] = None) -> list[str]:
    """Build the ping command line for the current platform."""
    if windows is None:
        windows = os.name == "nt"
    if windows:
        return ["ping", "-n", str(count), "-w", str(timeout * 1000), host]
    return ["ping", "-c", str(count), "-W", str(timeout), host]


def is_reachable(host: str, config: Optional[ProbeConfig] = None, windows: Optional[bool] = None) -> bool:
    """Return True if host answers at least one echo request."""
    config = config or ProbeConfig()
    if not host:
        return False

    if windows is None:
        windows = os.name == "nt"
    command = build_ping_command(host, config.count, config.timeout, windows=windows)

    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=config.count * config.timeout + 5,
            creationflags=CREATE_NO_WINDOW
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False

    if result.returncode != 0:
        return False
    if windows:
        return "TTL=" in result.stdout.upper()
    return True
