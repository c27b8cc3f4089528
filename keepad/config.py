"""
keepAD Configuration Module
===========================

Centralized configuration management for the keepAD toolkit.
Supports environment variables for sensitive data (bind credentials).

Design Decision:
- Configuration is a dataclass aggregate that each procedure reads from
- A JSON file can provide defaults; command-line flags override it
- Output paths are configurable for flexibility in different environments
"""

import json
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional


@dataclass
class LDAPConfig:
    """Configuration for the directory connection.

    Attributes:
        use_ssl: Whether to use LDAPS (port 636) vs LDAP (port 389)
        port: Explicit port (auto-detected from use_ssl when None)
        page_size: Page size for LDAP queries
        timeout: Connection timeout in seconds
        username: Bind user (loaded from KEEPAD_USERNAME if not provided)
        password: Bind password (loaded from KEEPAD_PASSWORD if not provided)
    """
    use_ssl: bool = False
    port: Optional[int] = None  # Auto-detect based on use_ssl
    page_size: int = 1000
    timeout: int = 30
    username: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self):
        if self.port is None:
            self.port = 636 if self.use_ssl else 389
        if self.username is None:
            self.username = os.environ.get("KEEPAD_USERNAME")
        if self.password is None:
            self.password = os.environ.get("KEEPAD_PASSWORD")


@dataclass
class ProbeConfig:
    """Configuration for the reachability probe.

    Attributes:
        count: Number of echo requests sent to each role holder
        timeout: Seconds to wait for each reply
    """
    count: int = 2
    timeout: int = 2


@dataclass
class NtdsutilConfig:
    """Configuration for the ntdsutil runner.

    Attributes:
        executable: Name or path of the ntdsutil binary
        script_dir: Directory for generated command scripts (system temp if None)
        keep_script: Keep the generated script after the run (for auditing)
        timeout: Seconds before a hung ntdsutil is killed (None waits forever)
    """
    executable: str = "ntdsutil.exe"
    script_dir: Optional[str] = None
    keep_script: bool = False
    timeout: Optional[int] = None


@dataclass
class AccountConfig:
    """Configuration for account creation and the inactive-account sweep.

    Attributes:
        inactive_days: Accounts without a logon for this many days are stale
        search_base: Where to look for accounts (domain root if None)
        include_never_logged_on: Also sweep accounts that never logged on
        default_container: Container for new users whose row names none
        change_password_at_logon: Force new users to change their password
    """
    inactive_days: int = 90
    search_base: Optional[str] = None
    include_never_logged_on: bool = False
    default_container: Optional[str] = None
    change_password_at_logon: bool = True


@dataclass
class OutputConfig:
    """Configuration for report output.

    Attributes:
        output_dir: Directory for report files
        delimiter: Field delimiter used in reports and CSV input
    """
    output_dir: str = "output"
    delimiter: str = ","


@dataclass
class KeepadConfig:
    """Main configuration container for keepAD.

    Usage:
        config = KeepadConfig()  # Uses all defaults
        config = KeepadConfig.from_file("keepad.json")
    """
    ldap: LDAPConfig = field(default_factory=LDAPConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    ntdsutil: NtdsutilConfig = field(default_factory=NtdsutilConfig)
    accounts: AccountConfig = field(default_factory=AccountConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    verbose: bool = True
    debug: bool = False

    @classmethod
    def from_dict(cls, config_dict: dict) -> "KeepadConfig":
        """Create configuration from a dictionary."""
        return cls(
            ldap=LDAPConfig(**config_dict.get("ldap", {})),
            probe=ProbeConfig(**config_dict.get("probe", {})),
            ntdsutil=NtdsutilConfig(**config_dict.get("ntdsutil", {})),
            accounts=AccountConfig(**config_dict.get("accounts", {})),
            output=OutputConfig(**config_dict.get("output", {})),
            verbose=config_dict.get("verbose", True),
            debug=config_dict.get("debug", False)
        )

    @classmethod
    def from_file(cls, path: str) -> "KeepadConfig":
        """Load configuration from a JSON file."""
        with open(Path(path), "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> dict:
        """Convert configuration to dictionary for serialization.

        The bind password is never included.
        """
        data = asdict(self)
        data["ldap"]["password"] = None
        return data


# Default global configuration instance
_default_config: Optional[KeepadConfig] = None


def get_config() -> KeepadConfig:
    """Get the global configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = KeepadConfig()
    return _default_config


def set_config(config: KeepadConfig) -> None:
    """Set the global configuration instance."""
    global _default_config
    _default_config = config
