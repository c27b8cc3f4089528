import json

from keepad.config import KeepadConfig, LDAPConfig, get_config, set_config


def test_port_follows_ssl():
    assert LDAPConfig().port == 389
    assert LDAPConfig(use_ssl=True).port == 636
    assert LDAPConfig(use_ssl=True, port=3269).port == 3269


def test_credentials_from_environment(monkeypatch):
    monkeypatch.setenv("KEEPAD_USERNAME", "CORP\\svc-keepad")
    monkeypatch.setenv("KEEPAD_PASSWORD", "from-env")
    config = LDAPConfig()
    assert config.username == "CORP\\svc-keepad"
    assert config.password == "from-env"
    assert LDAPConfig(username="admin", password="given").password == "given"


def test_from_dict():
    config = KeepadConfig.from_dict({
        "ldap": {"use_ssl": True},
        "probe": {"count": 4},
        "ntdsutil": {"executable": "C:\\Windows\\System32\\ntdsutil.exe"},
        "accounts": {"inactive_days": 120},
        "output": {"delimiter": ";"},
        "verbose": False,
    })
    assert config.ldap.port == 636
    assert config.probe.count == 4
    assert config.probe.timeout == 2
    assert config.ntdsutil.executable.endswith("ntdsutil.exe")
    assert config.accounts.inactive_days == 120
    assert config.output.delimiter == ";"
    assert config.verbose is False


def test_from_file(tmp_path):
    path = tmp_path / "keepad.json"
    path.write_text(json.dumps({"accounts": {"search_base": "OU=Staff,DC=corp,DC=local"}}))
    config = KeepadConfig.from_file(str(path))
    assert config.accounts.search_base == "OU=Staff,DC=corp,DC=local"
    assert config.accounts.change_password_at_logon is True


def test_to_dict_hides_password():
    config = KeepadConfig(ldap=LDAPConfig(username="admin", password="secret"))
    data = config.to_dict()
    assert data["ldap"]["username"] == "admin"
    assert data["ldap"]["password"] is None
    assert config.ldap.password == "secret"


def test_global_config():
    config = KeepadConfig(debug=True)
    set_config(config)
    try:
        assert get_config() is config
    finally:
        set_config(None)
    assert get_config() is not config
