from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from keepad.exceptions import DirectoryError
from keepad.model.schemas import (
    FSMORole, RoleHolder, ObjectCategory, DirectoryObject, AccountRecord,
    UF_ACCOUNTDISABLE
)


BASE_DN = "DC=corp,DC=local"
CONFIG_DN = f"CN=Configuration,{BASE_DN}"


def ntds_dn(server: str, site: str = "Default-First-Site-Name") -> str:
    return f"CN=NTDS Settings,CN={server},CN=Servers,CN={site},CN=Sites,{CONFIG_DN}"


class FakeDirectory:
    """In-memory stand-in for DirectoryClient used by the procedure tests."""

    domain = "corp.local"
    base_dn = BASE_DN
    default_user_container = f"CN=Users,{BASE_DN}"
    encrypted = True

    def __init__(self):
        self.holders: list[RoleHolder] = []
        self.objects: dict[ObjectCategory, list[DirectoryObject]] = {}
        self.lookup_failures: set[ObjectCategory] = set()
        self.deleted: list[str] = []
        self.fail_delete: set[str] = set()

        self.users: dict[str, str] = {}
        self.created = []
        self.fail_create: set[str] = set()

        self.inactive: list[AccountRecord] = []
        self.disabled: list[str] = []
        self.fail_disable: set[str] = set()
        self.disabled_accounts: list[AccountRecord] = []
        self.inactive_query = None
        self.disconnected = False

    def get_role_holders(self, roles):
        return [h for h in self.holders if h.role in roles]

    def find_objects(self, category, dc_name):
        if category in self.lookup_failures:
            raise DirectoryError(f"lookup of {category.value} refused")
        return list(self.objects.get(category, []))

    def delete_object(self, dn, tree=True):
        if dn in self.fail_delete:
            raise DirectoryError(f"Delete failed for {dn}: insufficientAccessRights", dn=dn)
        self.deleted.append(dn)

    def find_user(self, sam_account_name):
        return self.users.get(sam_account_name)

    def create_user(self, row, change_password_at_logon=True):
        if row.sam_account_name in self.fail_create:
            raise DirectoryError(f"Add failed for {row.sam_account_name}: constraintViolation")
        self.created.append(row)
        dn = f"CN={row.display_name},{row.container}"
        self.users[row.sam_account_name] = dn
        return dn

    def find_inactive_accounts(self, cutoff, search_base=None, include_never_logged_on=False):
        self.inactive_query = (cutoff, search_base, include_never_logged_on)
        return list(self.inactive)

    def disable_account(self, account):
        if account.sam_account_name in self.fail_disable:
            raise DirectoryError(f"Disable failed for {account.distinguished_name}: unwillingToPerform")
        account.user_account_control |= UF_ACCOUNTDISABLE
        self.disabled.append(account.sam_account_name)

    def find_disabled_accounts(self, search_base=None):
        return list(self.disabled_accounts)

    def disconnect(self):
        self.disconnected = True


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def holders():
    """PDC and RID on DC01, schema master on DC03."""
    return [
        RoleHolder(FSMORole.PDC_EMULATOR, ntds_dn("DC01"), "dc01.corp.local", "DC01"),
        RoleHolder(FSMORole.RID_MASTER, ntds_dn("DC01"), "dc01.corp.local", "DC01"),
        RoleHolder(FSMORole.SCHEMA_MASTER, ntds_dn("DC03"), "dc03.corp.local", "DC03"),
    ]


def make_account(sam: str, last_logon=None, uac: int = 0x200) -> AccountRecord:
    return AccountRecord(
        sam_account_name=sam,
        display_name=sam.title(),
        last_logon=last_logon,
        distinguished_name=f"CN={sam},OU=Staff,{BASE_DN}",
        user_account_control=uac
    )


@pytest.fixture
def stale_accounts():
    return [
        make_account("alice", datetime(2025, 1, 5, 8, 30, tzinfo=timezone.utc)),
        make_account("bob", datetime(2025, 2, 10, 12, 0, tzinfo=timezone.utc)),
        make_account("carol"),
    ]


class FakeEntry:
    def __init__(self, dn: str, attributes: dict):
        self.entry_dn = dn
        self.entry_attributes_as_dict = attributes


class FakeConnection:
    """Records the calls DirectoryClient makes on an ldap3 Connection."""

    def __init__(self, objects=None, paged=None):
        self.objects = objects or {}
        self.paged = paged or {}
        self.entries = []
        self.result = {}
        self.server = None

        self.searches = []
        self.paged_searches = []
        self.deleted = []
        self.added = []
        self.modified = []
        self.passwords = []
        self.reject: set[str] = set()
        self.password_ok = True
        self.unbound = False

        self.extend = SimpleNamespace(
            standard=SimpleNamespace(paged_search=self._paged_search),
            microsoft=SimpleNamespace(modify_password=self._modify_password)
        )

    def _refuse(self, dn):
        self.result = {"description": "insufficientAccessRights", "message": f"access denied on {dn}"}
        return False

    def search(self, search_base, search_filter, search_scope=None, attributes=None, **kwargs):
        self.searches.append((search_base, search_filter))
        if search_base in self.objects:
            self.entries = [FakeEntry(search_base, self.objects[search_base])]
            return True
        self.entries = []
        self.result = {"description": "noSuchObject", "message": ""}
        return False

    def _paged_search(self, search_base, search_filter, search_scope=None, attributes=None,
                      paged_size=None, generator=True, **kwargs):
        self.paged_searches.append((search_base, search_filter, search_scope))
        return [
            {"type": "searchResEntry", "dn": dn, "attributes": attrs}
            for dn, attrs in self.paged.get(search_base, [])
        ] + [{"type": "searchResDone"}]

    def delete(self, dn, controls=None):
        if dn in self.reject:
            return self._refuse(dn)
        self.deleted.append((dn, controls))
        return True

    def add(self, dn, object_class=None, attributes=None, controls=None):
        if dn in self.reject:
            return self._refuse(dn)
        self.added.append((dn, object_class, attributes))
        return True

    def modify(self, dn, changes, controls=None):
        if dn in self.reject:
            return self._refuse(dn)
        self.modified.append((dn, changes))
        return True

    def _modify_password(self, user, new_password, old_password=None, controls=None):
        self.passwords.append((user, new_password))
        if not self.password_ok:
            self.result = {"description": "unwillingToPerform", "message": "0000052D: password policy"}
        return self.password_ok

    def unbind(self):
        self.unbound = True
        return True
