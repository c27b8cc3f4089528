"""
Directory Client Module
=======================

Thin wrapper around an ldap3 connection exposing the queries and mutations
the keepAD procedures need.

Features:
- FSMO role holder lookup and resolution to server names
- Lookup of a dead controller's NTDS Settings, server, OU and computer objects
- Tree deletion of directory objects
- User creation with initial password
- Inactive / disabled account queries and account disabling

Design Decisions:
-----------------
1. Uses ldap3 library for cross-platform LDAP support
2. NTLM bind first, simple bind as fallback, anonymous when no credentials
   (NTLM is sealed on plain LDAP; AD only accepts password writes encrypted)
3. Naming contexts come from the rootDSE, derived from the domain if absent
4. Mutations raise DirectoryError so callers can isolate per-item failures
"""

import re
from datetime import datetime
from typing import Optional, Callable

from ldap3 import (
    Server, Connection, ALL, SUBTREE, BASE, LEVEL,
    NTLM, SIMPLE, ENCRYPT, MODIFY_REPLACE
)
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import escape_rdn

from ..config import LDAPConfig
from ..exceptions import DirectoryError
from ..model.schemas import (
    FSMORole, RoleHolder, ObjectCategory, DirectoryObject,
    UserRow, AccountRecord,
    UF_ACCOUNTDISABLE, UF_NORMAL_ACCOUNT,
    filetime_to_datetime, datetime_to_filetime, datetime_to_generalized_time
)


# LDAP_SERVER_TREE_DELETE_OID
TREE_DELETE_CONTROL = ("1.2.840.113556.1.4.805", True, None)

# LDAP_MATCHING_RULE_BIT_AND on ACCOUNTDISABLE
_DISABLED_FILTER = "(userAccountControl:1.2.840.113556.1.4.803:=2)"
_USER_FILTER = "(objectCategory=person)(objectClass=user)"

ACCOUNT_ATTRIBUTES = [
    'sAMAccountName', 'displayName', 'lastLogonTimestamp', 'userAccountControl'
]

# Splits "CN=a,CN=b,..." at the first unescaped comma
_RDN_SPLIT = re.compile(r'(?<!\\),')


def split_dn(dn: str) -> tuple[str, str]:
    """Split a DN into its first RDN value and the parent DN."""
    parts = _RDN_SPLIT.split(dn, maxsplit=1)
    rdn = parts[0]
    value = rdn.split("=", 1)[1] if "=" in rdn else rdn
    parent = parts[1] if len(parts) > 1 else ""
    return value, parent


def _first(attrs: dict, name: str, default=""):
    """First value of an attribute from an ldap3 attribute dict."""
    value = attrs.get(name)
    if isinstance(value, (list, tuple)):
        return value[0] if value else default
    if value is None:
        return default
    return value


class DirectoryClient:
    """Client for Active Directory queries and mutations via LDAP.

    Usage:
        client = DirectoryClient(
            server="dc02.corp.local",
            domain="corp.local",
            username="admin",
            password="password"
        )
        if client.connect():
            holders = client.get_role_holders(list(FSMORole))
    """

    def __init__(
        self,
        server: str,
        domain: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        config: Optional[LDAPConfig] = None,
        verbose: bool = True,
        progress_callback: Optional[Callable[[str], None]] = None,
        connection=None
    ):
        """Initialize the directory client.

        Args:
            server: IP address or hostname of a reachable domain controller
            domain: Domain name (e.g., "corp.local")
            username: Username for authentication (domain\\user or user@domain)
            password: Password for authentication
            config: LDAPConfig object for connection settings
            verbose: Whether to print progress messages
            progress_callback: Optional callback for progress updates
            connection: An already bound ldap3 Connection to reuse
        """
        self.server = server
        self.domain = domain
        self.config = config or LDAPConfig()
        self.username = username or self.config.username
        self.password = password or self.config.password
        self.verbose = verbose
        self.progress_callback = progress_callback

        self.connection: Optional[Connection] = connection
        self.encrypted = self.config.use_ssl

        # Derive naming contexts from domain; connect() refines them
        self.base_dn = ",".join([f"DC={part}" for part in domain.split(".")])
        self.root_dn = self.base_dn
        self.config_dn = f"CN=Configuration,{self.root_dn}"
        self.schema_dn = f"CN=Schema,{self.config_dn}"

        if connection is not None:
            self._load_naming_contexts()

    def _log(self, message: str) -> None:
        """Log a message to console and/or callback."""
        if self.verbose:
            print(message)
        if self.progress_callback:
            self.progress_callback(message)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self) -> bool:
        """Establish connection to the LDAP server.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            port = self.config.port or (636 if self.config.use_ssl else 389)
            server = Server(
                self.server,
                port=port,
                use_ssl=self.config.use_ssl,
                get_info=ALL,
                connect_timeout=self.config.timeout
            )

            if self.username and self.password:
                if '\\' not in self.username and '@' not in self.username:
                    ntlm_user = f"{self.domain.split('.')[0].upper()}\\{self.username}"
                else:
                    ntlm_user = self.username

                self._log(f"[*] Connecting to {self.server}:{port} as {ntlm_user}")

                try:
                    self.connection = Connection(
                        server,
                        user=ntlm_user,
                        password=self.password,
                        authentication=NTLM,
                        session_security=None if self.config.use_ssl else ENCRYPT,
                        auto_bind=True,
                        receive_timeout=self.config.timeout
                    )
                    self.encrypted = True
                except LDAPException:
                    self._log("[*] NTLM auth failed, trying simple bind...")
                    self.connection = Connection(
                        server,
                        user=self.username if '@' in self.username else f"{self.username}@{self.domain}",
                        password=self.password,
                        authentication=SIMPLE,
                        auto_bind=True,
                        receive_timeout=self.config.timeout
                    )
            else:
                self._log(f"[*] Connecting anonymously to {self.server}:{port}")
                self.connection = Connection(
                    server,
                    auto_bind=True,
                    receive_timeout=self.config.timeout
                )

            self._log(f"[+] Connected successfully to {self.server}")
            self._load_naming_contexts()
            return True

        except LDAPException as e:
            self._log(f"[!] Connection failed: {e}")
            return False

    def _load_naming_contexts(self) -> None:
        """Read naming contexts from the rootDSE when the server published it."""
        server = getattr(self.connection, "server", None)
        info = getattr(server, "info", None)
        other = getattr(info, "other", None) or {}

        def _context(name: str) -> Optional[str]:
            values = other.get(name) or []
            return str(values[0]) if values else None

        self.base_dn = _context("defaultNamingContext") or self.base_dn
        self.root_dn = _context("rootDomainNamingContext") or self.root_dn
        self.config_dn = _context("configurationNamingContext") or f"CN=Configuration,{self.root_dn}"
        self.schema_dn = _context("schemaNamingContext") or f"CN=Schema,{self.config_dn}"

    def disconnect(self) -> None:
        """Close the LDAP connection."""
        if self.connection:
            try:
                self.connection.unbind()
            except LDAPException as e:
                self._log(f"[!] Error while unbinding: {e}")
            self.connection = None

    def _require_connection(self) -> Connection:
        if not self.connection:
            raise DirectoryError("Not connected to a directory server")
        return self.connection

    def _failure(self, action: str, dn: str) -> DirectoryError:
        result = getattr(self.connection, "result", None) or {}
        detail = result.get("message") or result.get("description") or "unknown error"
        return DirectoryError(f"{action} failed for {dn}: {detail}", dn=dn)

    # ------------------------------------------------------------------
    # Searching
    # ------------------------------------------------------------------

    def _read(self, dn: str, attributes: list[str]) -> Optional[dict]:
        """Read one object's attributes; None when it does not exist."""
        connection = self._require_connection()
        try:
            found = connection.search(
                search_base=dn,
                search_filter="(objectClass=*)",
                search_scope=BASE,
                attributes=attributes
            )
        except LDAPException as e:
            raise DirectoryError(f"Read of {dn} failed: {e}", dn=dn)

        if not found or not connection.entries:
            return None
        return connection.entries[0].entry_attributes_as_dict

    def _search(
        self,
        search_base: str,
        search_filter: str,
        attributes: list[str],
        search_scope=SUBTREE
    ) -> list[tuple[str, dict]]:
        """Paged search returning (dn, attributes) pairs."""
        connection = self._require_connection()
        try:
            results = connection.extend.standard.paged_search(
                search_base=search_base,
                search_filter=search_filter,
                search_scope=search_scope,
                attributes=attributes,
                paged_size=self.config.page_size,
                generator=False
            )
        except LDAPException as e:
            raise DirectoryError(f"Search under {search_base} failed: {e}", dn=search_base)

        return [
            (str(item["dn"]), item.get("attributes", {}))
            for item in results or []
            if item.get("type") == "searchResEntry"
        ]

    # ------------------------------------------------------------------
    # FSMO roles
    # ------------------------------------------------------------------

    def role_object_dn(self, role: FSMORole) -> str:
        """DN of the object whose fSMORoleOwner records the role holder."""
        return {
            FSMORole.SCHEMA_MASTER: self.schema_dn,
            FSMORole.DOMAIN_NAMING_MASTER: f"CN=Partitions,{self.config_dn}",
            FSMORole.PDC_EMULATOR: self.base_dn,
            FSMORole.RID_MASTER: f"CN=RID Manager$,CN=System,{self.base_dn}",
            FSMORole.INFRASTRUCTURE_MASTER: f"CN=Infrastructure,{self.base_dn}",
        }[role]

    def get_role_owner(self, role: FSMORole) -> Optional[str]:
        """Return the NTDS Settings DN holding a role."""
        attrs = self._read(self.role_object_dn(role), ['fSMORoleOwner'])
        if attrs is None:
            return None
        owner = _first(attrs, 'fSMORoleOwner')
        return str(owner) if owner else None

    def resolve_holder(self, role: FSMORole, ntds_dn: str) -> RoleHolder:
        """Resolve an NTDS Settings DN to the holder's DNS and server name."""
        _, server_dn = split_dn(ntds_dn)
        server_name, _ = split_dn(server_dn) if server_dn else ("", "")

        dns_host_name = None
        try:
            attrs = self._read(server_dn, ['dNSHostName']) if server_dn else None
            if attrs:
                dns_host_name = str(_first(attrs, 'dNSHostName')) or None
        except DirectoryError as e:
            self._log(f"[!] Could not resolve {server_dn}: {e}")

        if not server_name and dns_host_name:
            server_name = dns_host_name.split(".")[0]

        return RoleHolder(
            role=role,
            holder=ntds_dn,
            dns_host_name=dns_host_name,
            server_name=server_name.upper() if server_name else None
        )

    def get_role_holders(self, roles: list[FSMORole]) -> list[RoleHolder]:
        """Look up and resolve the current holder of each role."""
        holders = []
        for role in roles:
            try:
                owner = self.get_role_owner(role)
            except DirectoryError as e:
                self._log(f"[!] Could not read {role.value} owner: {e}")
                continue

            if not owner:
                self._log(f"[!] No owner recorded for {role.value}")
                continue

            holders.append(self.resolve_holder(role, owner))
        return holders

    # ------------------------------------------------------------------
    # Controller metadata
    # ------------------------------------------------------------------

    def find_server_objects(self, dc_name: str) -> list[DirectoryObject]:
        """Server objects for a controller under CN=Sites."""
        entries = self._search(
            f"CN=Sites,{self.config_dn}",
            f"(&(objectClass=server)(cn={escape_filter_chars(dc_name)}))",
            ['cn']
        )
        return [DirectoryObject(ObjectCategory.SERVER, dc_name, dn) for dn, _ in entries]

    def find_ntds_settings(self, dc_name: str) -> list[DirectoryObject]:
        """NTDS Settings objects below the controller's server objects."""
        found = []
        for server in self.find_server_objects(dc_name):
            entries = self._search(
                server.distinguished_name,
                "(objectClass=nTDSDSA)",
                ['cn'],
                search_scope=LEVEL
            )
            found.extend(
                DirectoryObject(ObjectCategory.NTDS_SETTINGS, dc_name, dn) for dn, _ in entries
            )
        return found

    def find_ou_entries(self, dc_name: str) -> list[DirectoryObject]:
        """Entries for the controller in the Domain Controllers OU."""
        ou_dn = f"OU=Domain Controllers,{self.base_dn}"
        if self._read(ou_dn, ['ou']) is None:
            return []
        entries = self._search(
            ou_dn,
            f"(&(objectClass=computer)(cn={escape_filter_chars(dc_name)}))",
            ['cn'],
            search_scope=LEVEL
        )
        return [DirectoryObject(ObjectCategory.OU_ENTRY, dc_name, dn) for dn, _ in entries]

    def find_computer_accounts(self, dc_name: str) -> list[DirectoryObject]:
        """Computer accounts named after the controller anywhere in the domain."""
        entries = self._search(
            self.base_dn,
            f"(&(objectCategory=computer)(sAMAccountName={escape_filter_chars(dc_name)}$))",
            ['sAMAccountName']
        )
        return [DirectoryObject(ObjectCategory.COMPUTER, dc_name, dn) for dn, _ in entries]

    def find_objects(self, category: ObjectCategory, dc_name: str) -> list[DirectoryObject]:
        """Dispatch to the lookup for a cleanup category."""
        finder = {
            ObjectCategory.NTDS_SETTINGS: self.find_ntds_settings,
            ObjectCategory.SERVER: self.find_server_objects,
            ObjectCategory.OU_ENTRY: self.find_ou_entries,
            ObjectCategory.COMPUTER: self.find_computer_accounts,
        }[category]
        return finder(dc_name)

    def delete_object(self, dn: str, tree: bool = True) -> None:
        """Delete an object, with its children when tree is set."""
        connection = self._require_connection()
        controls = [TREE_DELETE_CONTROL] if tree else None
        try:
            deleted = connection.delete(dn, controls=controls)
        except LDAPException as e:
            raise DirectoryError(f"Delete failed for {dn}: {e}", dn=dn)
        if not deleted:
            raise self._failure("Delete", dn)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @property
    def default_user_container(self) -> str:
        return f"CN=Users,{self.base_dn}"

    def find_user(self, sam_account_name: str) -> Optional[str]:
        """Return the DN of the account with this logon name, if any."""
        entries = self._search(
            self.base_dn,
            f"(sAMAccountName={escape_filter_chars(sam_account_name)})",
            ['sAMAccountName']
        )
        return entries[0][0] if entries else None

    def create_user(self, row: UserRow, change_password_at_logon: bool = True) -> str:
        """Create an enabled user account and set its initial password.

        The account is added disabled, given its password, then enabled.
        If the password is rejected the account stays disabled.

        Returns:
            DN of the new account
        """
        connection = self._require_connection()
        container = row.container or self.default_user_container
        dn = f"CN={escape_rdn(row.display_name)},{container}"

        attributes = {
            'cn': row.display_name,
            'displayName': row.display_name,
            'sAMAccountName': row.sam_account_name,
            'userAccountControl': UF_NORMAL_ACCOUNT | UF_ACCOUNTDISABLE,
        }
        if row.user_principal_name:
            attributes['userPrincipalName'] = row.user_principal_name
        if row.given_name:
            attributes['givenName'] = row.given_name
        if row.surname:
            attributes['sn'] = row.surname

        try:
            if not connection.add(
                dn,
                ['top', 'person', 'organizationalPerson', 'user'],
                attributes
            ):
                raise self._failure("Add", dn)

            if not connection.extend.microsoft.modify_password(dn, row.password):
                raise self._failure("Password set (account left disabled)", dn)

            changes = {'userAccountControl': [(MODIFY_REPLACE, [UF_NORMAL_ACCOUNT])]}
            if change_password_at_logon:
                changes['pwdLastSet'] = [(MODIFY_REPLACE, [0])]
            if not connection.modify(dn, changes):
                raise self._failure("Enable", dn)
        except LDAPException as e:
            raise DirectoryError(f"Create failed for {dn}: {e}", dn=dn)

        return dn

    def _account_records(self, entries: list[tuple[str, dict]]) -> list[AccountRecord]:
        records = []
        for dn, attrs in entries:
            uac = _first(attrs, 'userAccountControl', UF_NORMAL_ACCOUNT)
            records.append(AccountRecord(
                sam_account_name=str(_first(attrs, 'sAMAccountName')),
                display_name=str(_first(attrs, 'displayName')),
                last_logon=filetime_to_datetime(_first(attrs, 'lastLogonTimestamp', None)),
                distinguished_name=dn,
                user_account_control=int(uac) if uac not in ("", None) else UF_NORMAL_ACCOUNT
            ))
        return records

    def find_inactive_accounts(
        self,
        cutoff: datetime,
        search_base: Optional[str] = None,
        include_never_logged_on: bool = False
    ) -> list[AccountRecord]:
        """Enabled user accounts whose last logon is at or before cutoff."""
        stale = f"(lastLogonTimestamp<={datetime_to_filetime(cutoff)})"
        if include_never_logged_on:
            created = datetime_to_generalized_time(cutoff)
            stale = f"(|{stale}(&(!(lastLogonTimestamp=*))(whenCreated<={created})))"

        entries = self._search(
            search_base or self.base_dn,
            f"(&{_USER_FILTER}(!{_DISABLED_FILTER}){stale})",
            ACCOUNT_ATTRIBUTES
        )
        return self._account_records(entries)

    def find_disabled_accounts(self, search_base: Optional[str] = None) -> list[AccountRecord]:
        """User accounts with the ACCOUNTDISABLE flag set."""
        entries = self._search(
            search_base or self.base_dn,
            f"(&{_USER_FILTER}{_DISABLED_FILTER})",
            ACCOUNT_ATTRIBUTES
        )
        return self._account_records(entries)

    def disable_account(self, account: AccountRecord) -> None:
        """Set ACCOUNTDISABLE on an account, keeping its other flags."""
        connection = self._require_connection()
        dn = account.distinguished_name
        uac = account.user_account_control | UF_ACCOUNTDISABLE
        try:
            modified = connection.modify(dn, {'userAccountControl': [(MODIFY_REPLACE, [uac])]})
        except LDAPException as e:
            raise DirectoryError(f"Disable failed for {dn}: {e}", dn=dn)
        if not modified:
            raise self._failure("Disable", dn)
        account.user_account_control = uac
