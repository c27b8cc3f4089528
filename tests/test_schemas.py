from datetime import datetime, timezone

import pytest

from keepad.model.schemas import (
    FSMORole, RoleScope, RoleHolder, UserRow, AccountRecord, ItemResult,
    filetime_to_datetime, datetime_to_filetime, datetime_to_generalized_time,
    FILETIME_NEVER, UF_ACCOUNTDISABLE
)


class TestFSMORole:

    @pytest.mark.parametrize("text, role", [
        ("pdc", FSMORole.PDC_EMULATOR),
        ("PDCEmulator", FSMORole.PDC_EMULATOR),
        ("rid", FSMORole.RID_MASTER),
        ("RID Master", FSMORole.RID_MASTER),
        ("schema", FSMORole.SCHEMA_MASTER),
        ("naming", FSMORole.DOMAIN_NAMING_MASTER),
        ("domain-naming", FSMORole.DOMAIN_NAMING_MASTER),
        ("infrastructure", FSMORole.INFRASTRUCTURE_MASTER),
        ("infrastructure_master", FSMORole.INFRASTRUCTURE_MASTER),
    ])
    def test_from_string(self, text, role):
        assert FSMORole.from_string(text) is role

    def test_from_string_rejects_unknown(self):
        with pytest.raises(ValueError):
            FSMORole.from_string("bridgehead")

    def test_scopes(self):
        forest = {r for r in FSMORole if r.scope is RoleScope.FOREST}
        assert forest == {FSMORole.SCHEMA_MASTER, FSMORole.DOMAIN_NAMING_MASTER}

    def test_seize_commands(self):
        assert FSMORole.PDC_EMULATOR.seize_command == "seize pdc"
        assert FSMORole.DOMAIN_NAMING_MASTER.seize_command == "seize naming master"
        assert all(r.seize_command.startswith("seize ") for r in FSMORole)


class TestRoleHolder:

    def test_probe_target_prefers_dns_name(self):
        holder = RoleHolder(FSMORole.PDC_EMULATOR, "CN=NTDS Settings,CN=DC01", "dc01.corp.local", "DC01")
        assert holder.probe_target == "dc01.corp.local"

    def test_probe_target_falls_back_to_server_name(self):
        holder = RoleHolder(FSMORole.PDC_EMULATOR, "CN=NTDS Settings,CN=DC01", None, "DC01")
        assert holder.probe_target == "DC01"

    def test_unprobed_holder_is_not_offline(self):
        holder = RoleHolder(FSMORole.PDC_EMULATOR, "x")
        assert not holder.is_offline
        holder.reachable = False
        assert holder.is_offline


class TestFiletime:

    def test_known_value(self):
        # 2021-01-01T00:00:00Z
        assert filetime_to_datetime(132539328000000000) == datetime(2021, 1, 1, tzinfo=timezone.utc)

    def test_round_trip(self):
        moment = datetime(2024, 6, 30, 15, 45, 10, tzinfo=timezone.utc)
        assert filetime_to_datetime(datetime_to_filetime(moment)) == moment

    @pytest.mark.parametrize("value", [None, "", 0, "0", FILETIME_NEVER, "garbage"])
    def test_never(self, value):
        assert filetime_to_datetime(value) is None

    def test_datetime_passthrough(self):
        moment = datetime(2024, 6, 30, 15, 45)
        assert filetime_to_datetime(moment) == moment.replace(tzinfo=timezone.utc)

    def test_epoch_datetime_means_never(self):
        assert filetime_to_datetime(datetime(1601, 1, 1, tzinfo=timezone.utc)) is None

    def test_generalized_time(self):
        assert datetime_to_generalized_time(datetime(2024, 3, 1, 9, 5, 0, tzinfo=timezone.utc)) == "20240301090500.0Z"


class TestUserRow:

    def test_from_record_with_standard_headers(self):
        row = UserRow.from_record({
            "Name": "Jane Doe",
            "SamAccountName": "jdoe",
            "UserPrincipalName": "jdoe@corp.local",
            "GivenName": "Jane",
            "Surname": "Doe",
            "Path": "OU=Staff,DC=corp,DC=local",
            "Password": "S3cret!pass",
        })
        assert row.display_name == "Jane Doe"
        assert row.sam_account_name == "jdoe"
        assert row.container == "OU=Staff,DC=corp,DC=local"
        assert row.password == "S3cret!pass"

    def test_defaults_are_derived(self):
        row = UserRow.from_record(
            {"First Name": "Jane", "Last Name": "Doe", "sam": "jdoe", "password": "x"},
            default_container="CN=Users,DC=corp,DC=local",
            upn_suffix="corp.local"
        )
        assert row.display_name == "Jane Doe"
        assert row.user_principal_name == "jdoe@corp.local"
        assert row.container == "CN=Users,DC=corp,DC=local"

    def test_missing_password(self):
        with pytest.raises(ValueError, match="password"):
            UserRow.from_record({"SamAccountName": "jdoe", "Password": "  "})

    def test_password_not_in_repr(self):
        row = UserRow.from_record({"SamAccountName": "jdoe", "Password": "hunter2"})
        assert "hunter2" not in repr(row)


class TestAccountRecord:

    def test_enabled_flag(self):
        account = AccountRecord("jdoe", "Jane", None, "CN=jdoe", 0x200)
        assert account.enabled
        account.user_account_control |= UF_ACCOUNTDISABLE
        assert not account.enabled

    def test_to_dict(self):
        account = AccountRecord("jdoe", "Jane", datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc), "CN=jdoe")
        assert account.to_dict() == {
            "SamAccountName": "jdoe",
            "DisplayName": "Jane",
            "LastLogonDate": "2024-01-02 03:04:05",
            "DistinguishedName": "CN=jdoe",
        }
        account.last_logon = None
        assert account.to_dict()["LastLogonDate"] == "Never"


def test_item_result_to_dict():
    assert ItemResult("jdoe", True, "created").to_dict() == {"Item": "jdoe", "Success": True, "Message": "created"}
