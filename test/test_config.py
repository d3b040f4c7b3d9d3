# Author: PB and Claude
# Date: 2026-10-18
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ---
# test/test_config.py

"""Tests for Pinme config module (toml + environment)."""

from pathlib import Path

import pytest

from pinme_cli.config import (
    DEFAULT_API_BASE,
    DEFAULT_CAR_API_BASE,
    Credential,
    PinmeConfig,
    _load_credential,
    get_device_id,
    load_config,
)


class TestCredential:
    def test_to_headers(self):
        cred = Credential(address="0xabc", token="tok")
        assert cred.to_headers() == {"x-token-address": "0xabc", "x-auth-token": "tok"}

    def test_masked_long_token(self):
        cred = Credential(address="0xabc", token="abcdefghijklmnop")
        assert cred.masked() == "0xabc:abcd...mnop"

    def test_masked_short_token(self):
        assert Credential(address="0xabc", token="abc").masked() == "0xabc:***"


class TestPinmeConfig:
    def test_defaults(self):
        cfg = PinmeConfig()
        assert cfg.api_base == DEFAULT_API_BASE
        assert cfg.car_base == DEFAULT_CAR_API_BASE
        assert cfg.credential is None
        assert cfg.export_max_attempts is None

    def test_upload_base_falls_back(self):
        assert PinmeConfig(api_base="http://a").get_upload_base() == "http://a"
        assert PinmeConfig(api_base="http://a", upload_base="http://u").get_upload_base() == "http://u"

    def test_validate_ok(self):
        cfg = PinmeConfig(
            credential=Credential("0xabc", "tok"),
            secret_key="s",
            preview_url="https://preview/",
        )
        assert cfg.validate() == ([], [])

    def test_validate_errors(self):
        cfg = PinmeConfig(
            api_base="ftp://nope",
            check_domain_path="check",
            export_interval=0,
            export_max_attempts=0,
        )
        errors, warnings = cfg.validate()
        assert len(errors) == 4
        assert any("ftp://nope" in e for e in errors)

    def test_validate_warnings(self):
        errors, warnings = PinmeConfig().validate()
        assert errors == []
        assert any("credential" in w for w in warnings)
        assert any("secret_key" in w for w in warnings)


class TestLoadCredential:
    def test_valid(self, tmp_path):
        path = tmp_path / "auth"
        path.write_text("0xabc:tok:with:colons\n")
        cred = _load_credential(path)
        assert cred.address == "0xabc"
        assert cred.token == "tok:with:colons"

    def test_missing_is_none(self, tmp_path):
        assert _load_credential(tmp_path / "auth") is None

    def test_no_colon(self, tmp_path):
        path = tmp_path / "auth"
        path.write_text("no-colon-here")
        with pytest.raises(ValueError, match="Invalid auth file format"):
            _load_credential(path)

    def test_empty_token(self, tmp_path):
        path = tmp_path / "auth"
        path.write_text("0xabc:")
        with pytest.raises(ValueError, match="empty"):
            _load_credential(path)


class TestLoadConfig:
    def test_full_file(self, tmp_path):
        auth_file = tmp_path / "auth"
        auth_file.write_text("0xabc:tok")
        config = tmp_path / "config.toml"
        config.write_text(f"""
[api]
base = "http://api.test/v4/"
car_base = "http://api.test/v3"
upload_base = "http://upload.test"
check_domain_path = "/check"
preview_url = "https://preview.test/#/"

[auth]
auth_file = "{auth_file}"

[obfuscation]
secret_key = "s3cret"

[export]
interval = 2
max_attempts = 10

[device]
id_file = "{tmp_path / 'device'}"
""")
        cfg = load_config(config, env={})
        assert cfg.api_base == "http://api.test/v4"
        assert cfg.car_base == "http://api.test/v3"
        assert cfg.get_upload_base() == "http://upload.test"
        assert cfg.check_domain_path == "/check"
        assert cfg.preview_url == "https://preview.test/#/"
        assert cfg.secret_key == "s3cret"
        assert cfg.credential == Credential("0xabc", "tok")
        assert cfg.export_interval == 2.0
        assert cfg.export_max_attempts == 10
        assert cfg.device_id_file == tmp_path / "device"

    def test_env_overrides(self, tmp_path):
        config = tmp_path / "config.toml"
        config.write_text("""
[api]
base = "http://file/v4"
preview_url = "https://file-preview/"

[auth]
auth_file = "/nonexistent/auth"
""")
        auth_file = tmp_path / "auth"
        auth_file.write_text("0xenv:tok")
        env = {
            "PINME_API_BASE": "http://env/v4",
            "IPFS_PREVIEW_URL": "https://env-preview/",
            "SECRET_KEY": "envkey",
            "PINME_CHECK_DOMAIN_PATH": "/env_check",
            "PINME_AUTH_FILE": str(auth_file),
        }
        cfg = load_config(config, env=env)
        assert cfg.api_base == "http://env/v4"
        # CAR base follows PINME_API_BASE when CAR_API_BASE is unset
        assert cfg.car_base == "http://env/v4"
        assert cfg.preview_url == "https://env-preview/"
        assert cfg.secret_key == "envkey"
        assert cfg.check_domain_path == "/env_check"
        assert cfg.credential.address == "0xenv"

    def test_car_api_base_env(self, tmp_path):
        config = tmp_path / "config.toml"
        config.write_text("")
        env = {
            "CAR_API_BASE": "http://car",
            "PINME_API_BASE": "http://api",
            "PINME_AUTH_FILE": str(tmp_path / "auth"),
        }
        cfg = load_config(config, env=env)
        assert cfg.car_base == "http://car"

    def test_explicit_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml", env={})

    def test_bad_auth_file_raises(self, tmp_path):
        auth_file = tmp_path / "auth"
        auth_file.write_text("garbage")
        config = tmp_path / "config.toml"
        config.write_text(f'[auth]\nauth_file = "{auth_file}"\n')
        with pytest.raises(ValueError):
            load_config(config, env={})

    def test_defaults_when_sections_missing(self, tmp_path):
        config = tmp_path / "config.toml"
        config.write_text(f'[auth]\nauth_file = "{tmp_path / "none"}"\n')
        cfg = load_config(config, env={})
        assert cfg.api_base == DEFAULT_API_BASE
        assert cfg.car_base == DEFAULT_CAR_API_BASE
        assert cfg.credential is None
        assert cfg.export_max_attempts is None


class TestDeviceId:
    def test_created_and_persisted(self, tmp_path):
        id_file = tmp_path / "sub" / "device_id"
        first = get_device_id(id_file)
        assert id_file.exists()
        assert get_device_id(id_file) == first
        assert len(first) == 32

    def test_reads_existing(self, tmp_path):
        id_file = tmp_path / "device_id"
        id_file.write_text("my-device\n")
        assert get_device_id(id_file) == "my-device"

    def test_empty_file_regenerates(self, tmp_path):
        id_file = tmp_path / "device_id"
        id_file.write_text("")
        device_id = get_device_id(id_file)
        assert device_id
        assert id_file.read_text().strip() == device_id
