"""
keepAD Data Schemas
===================

Typed dataclasses for the transient directory records each procedure
consumes and discards within a single run.

Design Decisions:
-----------------
1. FSMORole carries everything needed to find and seize a role
2. Records are created from directory queries or spreadsheet rows and never
   persisted
3. ItemResult is the common per-item outcome of every mutation

Schema Overview:
- FSMORole / RoleScope: the five operations master roles
- RoleHolder: a role and the server currently holding it
- DirectoryObject / ObjectCategory: leftover objects of a dead controller
- UserRow: one account to create
- AccountRecord: one user account found by a query
- ItemResult: outcome of a single mutation
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional


# userAccountControl flags
UF_ACCOUNTDISABLE = 0x0002
UF_NORMAL_ACCOUNT = 0x0200

# FILETIME epoch and the "never" sentinel used by accountExpires and friends
FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)
FILETIME_NEVER = 0x7FFFFFFFFFFFFFFF


def filetime_to_datetime(value) -> Optional[datetime]:
    """Convert an AD FILETIME (100-ns ticks since 1601) to an aware datetime.

    ldap3 already returns a datetime for schema-aware connections; those
    pass through. Zero and the "never" sentinel map to None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        # ldap3 renders 0 as the FILETIME epoch itself
        if value <= FILETIME_EPOCH:
            return None
        return value
    try:
        ticks = int(value)
    except (TypeError, ValueError):
        return None
    if ticks <= 0 or ticks >= FILETIME_NEVER:
        return None
    return FILETIME_EPOCH + timedelta(microseconds=ticks // 10)


def datetime_to_filetime(value: datetime) -> int:
    """Convert a datetime to an AD FILETIME integer."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - FILETIME_EPOCH
    return (delta.days * 86400 + delta.seconds) * 10_000_000 + delta.microseconds * 10


def datetime_to_generalized_time(value: datetime) -> str:
    """Format a datetime as LDAP GeneralizedTime (for whenCreated filters)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y%m%d%H%M%S.0Z")


class RoleScope(Enum):
    """Whether a role is unique per forest or per domain."""
    FOREST = "Forest"
    DOMAIN = "Domain"


class FSMORole(Enum):
    """Flexible Single Master Operations roles.

    Values match the role names printed by the directory tools.
    """
    SCHEMA_MASTER = "SchemaMaster"
    DOMAIN_NAMING_MASTER = "DomainNamingMaster"
    PDC_EMULATOR = "PDCEmulator"
    RID_MASTER = "RIDMaster"
    INFRASTRUCTURE_MASTER = "InfrastructureMaster"

    @property
    def scope(self) -> RoleScope:
        if self in (FSMORole.SCHEMA_MASTER, FSMORole.DOMAIN_NAMING_MASTER):
            return RoleScope.FOREST
        return RoleScope.DOMAIN

    @property
    def seize_command(self) -> str:
        """The ntdsutil 'roles' subcommand that seizes this role."""
        return {
            FSMORole.SCHEMA_MASTER: "seize schema master",
            FSMORole.DOMAIN_NAMING_MASTER: "seize naming master",
            FSMORole.PDC_EMULATOR: "seize pdc",
            FSMORole.RID_MASTER: "seize rid master",
            FSMORole.INFRASTRUCTURE_MASTER: "seize infrastructure master",
        }[self]

    @classmethod
    def from_string(cls, s: str) -> "FSMORole":
        """Convert string to FSMORole, handling the usual spellings.

        Raises:
            ValueError: if the string names no role
        """
        normalized = s.strip().lower().replace(" ", "").replace("_", "").replace("-", "")

        for role in cls:
            if role.value.lower() == normalized:
                return role

        aliases = {
            "schema": cls.SCHEMA_MASTER,
            "naming": cls.DOMAIN_NAMING_MASTER,
            "namingmaster": cls.DOMAIN_NAMING_MASTER,
            "domainnaming": cls.DOMAIN_NAMING_MASTER,
            "pdc": cls.PDC_EMULATOR,
            "pdcemulator": cls.PDC_EMULATOR,
            "rid": cls.RID_MASTER,
            "ridmaster": cls.RID_MASTER,
            "infrastructure": cls.INFRASTRUCTURE_MASTER,
            "infra": cls.INFRASTRUCTURE_MASTER,
        }
        if normalized in aliases:
            return aliases[normalized]

        raise ValueError(f"Unknown FSMO role: {s!r}")


@dataclass
class RoleHolder:
    """A role together with the server currently holding it.

    Attributes:
        role: The FSMO role
        holder: DN of the holder's NTDS Settings object (fSMORoleOwner)
        dns_host_name: dNSHostName of the holder's server object
        server_name: Short server name (server object CN)
        reachable: Probe outcome; None until probed
    """
    role: FSMORole
    holder: str
    dns_host_name: Optional[str] = None
    server_name: Optional[str] = None
    reachable: Optional[bool] = None

    @property
    def probe_target(self) -> str:
        """Host name to probe: the DNS name, else the short server name."""
        return self.dns_host_name or self.server_name or ""

    @property
    def is_offline(self) -> bool:
        """True only when the holder was probed and did not answer."""
        return self.reachable is False


class ObjectCategory(Enum):
    """Leftover objects of a decommissioned controller, in deletion order."""
    NTDS_SETTINGS = "NTDS Settings"
    SERVER = "Server object"
    OU_ENTRY = "Domain Controllers OU entry"
    COMPUTER = "Computer account"


@dataclass
class DirectoryObject:
    """A directory object located by name."""
    category: ObjectCategory
    name: str
    distinguished_name: str


# Spreadsheet column aliases -> UserRow field
USER_COLUMN_ALIASES = {
    "display_name": ("displayname", "name", "fullname"),
    "sam_account_name": ("samaccountname", "sam", "logonname", "username"),
    "user_principal_name": ("userprincipalname", "upn", "principalname"),
    "given_name": ("givenname", "firstname", "first"),
    "surname": ("surname", "sn", "lastname", "last"),
    "container": ("path", "container", "ou", "organizationalunit"),
    "password": ("password", "accountpassword", "initialpassword"),
}

USER_REQUIRED_FIELDS = ("sam_account_name", "password")


@dataclass
class UserRow:
    """One account to create, sourced from a spreadsheet row.

    Attributes:
        display_name: Display name and CN of the new object
        sam_account_name: Pre-Windows 2000 logon name
        user_principal_name: user@suffix principal name
        given_name: First name
        surname: Last name
        container: DN of the OU/container to create the user in
        password: Initial password
    """
    display_name: str
    sam_account_name: str
    user_principal_name: str
    given_name: str = ""
    surname: str = ""
    container: str = ""
    password: str = field(default="", repr=False)

    @classmethod
    def from_record(
        cls,
        record: dict,
        default_container: str = "",
        upn_suffix: str = ""
    ) -> "UserRow":
        """Build a row from a spreadsheet record with tolerant headers.

        Missing display names are composed from given name and surname;
        missing principal names from the logon name and upn_suffix.

        Raises:
            ValueError: if the logon name or password is missing
        """
        normalized = {
            str(key).strip().lower().replace(" ", "").replace("_", ""): str(value).strip()
            for key, value in record.items()
            if value is not None
        }

        values = {}
        for field_name, aliases in USER_COLUMN_ALIASES.items():
            values[field_name] = next(
                (normalized[alias] for alias in aliases if normalized.get(alias)),
                ""
            )

        missing = [name for name in USER_REQUIRED_FIELDS if not values[name]]
        if missing:
            raise ValueError(f"Missing required column(s): {', '.join(missing)}")

        if not values["display_name"]:
            full_name = f"{values['given_name']} {values['surname']}".strip()
            values["display_name"] = full_name or values["sam_account_name"]

        if not values["user_principal_name"] and upn_suffix:
            values["user_principal_name"] = f"{values['sam_account_name']}@{upn_suffix}"

        if not values["container"]:
            values["container"] = default_container

        return cls(**values)


@dataclass
class AccountRecord:
    """A user account returned by an account query.

    Attributes:
        sam_account_name: Logon name
        display_name: Display name (may be empty)
        last_logon: Replicated last-logon timestamp; None if never logged on
        distinguished_name: Full LDAP DN
        user_account_control: Raw userAccountControl flags
    """
    sam_account_name: str
    display_name: str
    last_logon: Optional[datetime]
    distinguished_name: str
    user_account_control: int = UF_NORMAL_ACCOUNT

    @property
    def enabled(self) -> bool:
        return not (self.user_account_control & UF_ACCOUNTDISABLE)

    def to_dict(self) -> dict:
        """Report row for this account."""
        return {
            "SamAccountName": self.sam_account_name,
            "DisplayName": self.display_name,
            "LastLogonDate": self.last_logon.strftime("%Y-%m-%d %H:%M:%S") if self.last_logon else "Never",
            "DistinguishedName": self.distinguished_name,
        }


@dataclass
class ItemResult:
    """Outcome of one mutation (seizure, deletion, creation or disable)."""
    item: str
    success: bool
    message: str = ""
    skipped: bool = False

    def to_dict(self) -> dict:
        return {
            "Item": self.item,
            "Success": self.success,
            "Message": self.message,
        }
