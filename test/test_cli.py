# Author: PB and Claude
# Date: 2026-10-18
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ---
# test/test_cli.py

"""Tests for the click command surface."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from pinme_cli.cli import cli
from pinme_cli.config import Credential, PinmeConfig
from pinme_cli.operations import ExportFailed
from pinme_cli.pinme_api import CredentialExpired
from pinme_cli.types import (
    DeployResult,
    DomainAvailability,
    DomainRecord,
    RC_SUCCESS,
    RC_BIND_FAILED,
    RC_CREDENTIAL_EXPIRED,
)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cfg(tmp_path):
    return PinmeConfig(
        api_base="http://api.test/v4",
        car_base="http://api.test/v3",
        preview_url="https://preview.test/",
        secret_key="secret",
        credential=Credential("0xabc", "tok123"),
        auth_file=tmp_path / "auth",
        device_id_file=tmp_path / "device_id",
        export_interval=0.01,
    )


@pytest.fixture
def patched(cfg):
    with patch("pinme_cli.config.load_config", return_value=cfg), \
         patch("pinme_cli.config.get_device_id", return_value="dev-1"), \
         patch("pinme_cli.operations.deploy") as mock_deploy:
        mock_deploy.return_value = DeployResult(
            path="/tmp/dist", returncode=RC_SUCCESS, content_hash="QmHash",
            preview_url="https://preview.test/tok",
        )
        yield mock_deploy


class TestUpload:
    def test_with_path_and_domain(self, runner, patched, tmp_path):
        result = runner.invoke(cli, ["upload", str(tmp_path), "--domain", " my-site "])
        assert result.exit_code == 0
        kwargs = patched.call_args[1]
        assert patched.call_args[0][0] == str(tmp_path)
        assert kwargs["domain"] == "my-site"
        assert kwargs["force_dns"] is False
        assert kwargs["device_id"] == "dev-1"
        assert kwargs["secret_key"] == "secret"
        assert kwargs["preview_base"] == "https://preview.test/"
        assert "upload successful" in result.output

    def test_prompts_for_path(self, runner, patched, tmp_path):
        result = runner.invoke(cli, ["upload"], input=f"{tmp_path}\n")
        assert result.exit_code == 0
        assert patched.call_args[0][0] == str(tmp_path)
        assert patched.call_args[1]["domain"] is None

    def test_dns_flag(self, runner, patched, tmp_path):
        runner.invoke(cli, ["upload", str(tmp_path), "-d", "my-site", "-D"])
        assert patched.call_args[1]["force_dns"] is True

    def test_exit_code_follows_result(self, runner, patched, tmp_path):
        patched.return_value = DeployResult(path="x", returncode=RC_BIND_FAILED, content_hash="Qm")
        result = runner.invoke(cli, ["upload", str(tmp_path), "-d", "my-site"])
        assert result.exit_code == RC_BIND_FAILED
        assert "upload successful" not in result.output

    def test_output_json(self, runner, patched, tmp_path):
        out = tmp_path / "result.json"
        result = runner.invoke(cli, ["upload", str(tmp_path), "--output-json", str(out)])
        assert result.exit_code == 0
        assert '"content_hash": "QmHash"' in out.read_text()


class TestBind:
    def test_prompts_for_both(self, runner, patched, tmp_path):
        result = runner.invoke(cli, ["bind"], input=f"{tmp_path}\nexample.com\n")
        assert result.exit_code == 0
        assert patched.call_args[0][0] == str(tmp_path)
        assert patched.call_args[1]["domain"] == "example.com"

    def test_same_call_as_upload(self, runner, patched, tmp_path):
        runner.invoke(cli, ["bind", str(tmp_path), "-d", "my-site"])
        bind_call = patched.call_args
        runner.invoke(cli, ["upload", str(tmp_path), "-d", "my-site"])
        assert patched.call_args[0] == bind_call[0]
        assert {k: v for k, v in patched.call_args[1].items() if k not in ("client", "uploader")} == \
               {k: v for k, v in bind_call[1].items() if k not in ("client", "uploader")}

    def test_missing_domain(self, runner, patched, tmp_path):
        result = runner.invoke(cli, ["bind", str(tmp_path)], input="\n")
        assert result.exit_code == 1
        assert "Path and domain are required" in result.output
        patched.assert_not_called()

    def test_requires_credential(self, runner, patched, cfg, tmp_path):
        cfg.credential = None
        result = runner.invoke(cli, ["bind", str(tmp_path), "-d", "my-site"])
        assert result.exit_code == 1
        assert "Please login first" in result.output
        patched.assert_not_called()

    def test_expired_exit_code(self, runner, patched, tmp_path):
        patched.return_value = DeployResult(path="x", returncode=RC_CREDENTIAL_EXPIRED)
        result = runner.invoke(cli, ["bind", str(tmp_path), "-d", "my-site"])
        assert result.exit_code == RC_CREDENTIAL_EXPIRED


class TestCheckDomain:
    def test_available(self, runner, patched):
        with patch("pinme_cli.operations.PinmeClient.check_domain_available",
                   return_value=DomainAvailability(is_valid=True)):
            result = runner.invoke(cli, ["check-domain", "my-site"])
        assert result.exit_code == 0
        assert "https://my-site.pinit.eth.limo" in result.output

    def test_unavailable(self, runner, patched):
        with patch("pinme_cli.operations.PinmeClient.check_domain_available",
                   return_value=DomainAvailability(is_valid=False, error="taken")):
            result = runner.invoke(cli, ["check-domain", "my-site"])
        assert result.exit_code == 1
        assert "taken" in result.output

    def test_invalid_dns(self, runner, patched):
        result = runner.invoke(cli, ["check-domain", "a..com"])
        assert result.exit_code == 1
        assert "Consecutive dots" in result.output


class TestDomains:
    def test_lists(self, runner, patched):
        records = [DomainRecord(domain_name="my-site"), DomainRecord(domain_name="example.com", domain_type=1)]
        with patch("pinme_cli.operations.list_domains", return_value=records):
            result = runner.invoke(cli, ["domains"])
        assert result.exit_code == 0
        assert "my-site  (pinme)" in result.output
        assert "example.com  (dns)" in result.output

    def test_expired_is_silent(self, runner, patched):
        with patch("pinme_cli.operations.list_domains", side_effect=CredentialExpired("Token expired")):
            result = runner.invoke(cli, ["domains"])
        assert result.exit_code == 1
        assert "Error" not in result.output


class TestExport:
    def test_success(self, runner, patched, tmp_path):
        with patch("pinme_cli.operations.export_car", return_value=tmp_path / "QmCID.car") as mock_export:
            result = runner.invoke(cli, ["export", "QmCID", "-o", str(tmp_path)])
        assert result.exit_code == 0
        assert "CAR file saved to" in result.output
        args, kwargs = mock_export.call_args
        assert args == ("QmCID", "dev-1")
        assert kwargs["output"] == str(tmp_path)
        assert kwargs["interval"] == 0.01
        assert kwargs["max_attempts"] is None

    def test_uid_and_max_attempts(self, runner, patched):
        with patch("pinme_cli.operations.export_car", return_value=Path("x.car")) as mock_export:
            runner.invoke(cli, ["export", "QmCID", "--uid", "u-9", "--max-attempts", "3"])
        assert mock_export.call_args[0] == ("QmCID", "u-9")
        assert mock_export.call_args[1]["max_attempts"] == 3

    def test_failure(self, runner, patched):
        with patch("pinme_cli.operations.export_car", side_effect=ExportFailed("Export failed: boom")):
            result = runner.invoke(cli, ["export", "QmCID"])
        assert result.exit_code == 1
        assert "Error: Export failed: boom" in result.output


class TestConfigCommand:
    def test_valid(self, runner, patched):
        result = runner.invoke(cli, ["config"])
        assert result.exit_code == 0
        assert "0xabc:******" in result.output
        assert "tok123" not in result.output
        assert "✓ Config is valid" in result.output

    def test_errors(self, runner, patched, cfg):
        cfg.api_base = "nope"
        result = runner.invoke(cli, ["config", "--validate-only"])
        assert result.exit_code == 1
        assert "nope" in result.output
