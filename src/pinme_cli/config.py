# Author: PB and Claude
# Date: 2026-10-18
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ---
# src/pinme_cli/config.py

"""
Pinme Configuration Management

Reads an optional toml file (default ~/.pinme/config.toml):

  [api]          base, car_base, upload_base, check_domain_path, preview_url
  [auth]         auth_file      -- file containing 'address:token'
  [obfuscation]  secret_key
  [export]       interval, max_attempts
  [device]       id_file

Environment variables override the file:
  PINME_API_BASE, CAR_API_BASE, PINME_UPLOAD_BASE, PINME_CHECK_DOMAIN_PATH,
  IPFS_PREVIEW_URL, SECRET_KEY, PINME_AUTH_FILE
"""

import os
import tomllib
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_HOME = Path.home() / ".pinme"
DEFAULT_CONFIG = DEFAULT_HOME / "config.toml"
DEFAULT_AUTH_FILE = DEFAULT_HOME / "auth"
DEFAULT_DEVICE_ID_FILE = DEFAULT_HOME / "device_id"

DEFAULT_API_BASE = "http://ipfs-proxy.opena.chat/api/v4"
DEFAULT_CAR_API_BASE = "http://ipfs-proxy.opena.chat/api/v3"
DEFAULT_CHECK_DOMAIN_PATH = "/check_domain"
DEFAULT_EXPORT_INTERVAL = 5.0


@dataclass(frozen=True)
class Credential:
    """Account credential sent with authenticated API calls."""
    address: str
    token: str

    def to_headers(self) -> dict:
        return {"x-token-address": self.address, "x-auth-token": self.token}

    def masked(self) -> str:
        """Display form that hides most of the token."""
        token = self.token
        if len(token) > 8:
            token = f"{token[:4]}...{token[-4:]}"
        else:
            token = "*" * len(token)
        return f"{self.address}:{token}"


@dataclass
class PinmeConfig:
    """Complete Pinme configuration."""
    api_base: str = DEFAULT_API_BASE
    car_base: str = DEFAULT_CAR_API_BASE
    upload_base: Optional[str] = None
    check_domain_path: str = DEFAULT_CHECK_DOMAIN_PATH
    preview_url: str = ""
    secret_key: Optional[str] = None
    auth_file: Path = DEFAULT_AUTH_FILE
    credential: Optional[Credential] = None
    device_id_file: Path = DEFAULT_DEVICE_ID_FILE
    export_interval: float = DEFAULT_EXPORT_INTERVAL
    export_max_attempts: Optional[int] = None

    def get_upload_base(self) -> str:
        """Upload endpoint base, falling back to the API base."""
        return self.upload_base or self.api_base

    def validate(self) -> tuple[list[str], list[str]]:
        """
        Validate configuration, return (errors, warnings).
        Empty errors list means config is valid for operations.
        """
        errors = []
        warnings = []

        for name, value in (("api.base", self.api_base), ("api.car_base", self.car_base)):
            if not value.startswith(("http://", "https://")):
                errors.append(f"{name} '{value}' is not an http(s) URL")

        if not self.check_domain_path.startswith("/"):
            errors.append(f"api.check_domain_path '{self.check_domain_path}' must start with '/'")

        if self.export_interval <= 0:
            errors.append("export.interval must be positive")
        if self.export_max_attempts is not None and self.export_max_attempts < 1:
            errors.append("export.max_attempts must be at least 1")

        if not self.credential:
            warnings.append(f"no credential found at {self.auth_file} (domain binding and export need one)")
        if not self.secret_key:
            warnings.append("no secret_key configured (preview links will show the raw hash)")
        if not self.preview_url:
            warnings.append("no preview_url configured")

        return errors, warnings


def _load_credential(auth_file: Path) -> Optional[Credential]:
    """Read auth file containing 'address:token'.

    Returns None if the file does not exist.

    Raises:
        ValueError: If auth file format is invalid
    """
    if not auth_file.exists():
        return None

    text = auth_file.read_text().strip()
    if ":" not in text:
        raise ValueError(f"Invalid auth file format (expected 'address:token'): {auth_file}")

    address, token = text.split(":", 1)
    if not address or not token:
        raise ValueError(f"Invalid auth file format (empty address or token): {auth_file}")
    return Credential(address=address, token=token)


def _optional_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def load_config(config_path: Path = None, env: dict = None) -> PinmeConfig:
    """Load config from toml file and environment. Returns PinmeConfig.

    Args:
        config_path: Path to config.toml. Default: ~/.pinme/config.toml.
            The default file is optional; an explicit path must exist.
        env: Environment mapping (default: os.environ)

    Returns:
        PinmeConfig object

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValueError: If config or auth file is invalid
    """
    env = os.environ if env is None else env
    config_file = config_path or DEFAULT_CONFIG

    data = {}
    if config_file.exists():
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    elif config_path is not None:
        raise FileNotFoundError(f"Config file not found: {config_file}")

    api = data.get("api", {})
    auth = data.get("auth", {})
    obfuscation = data.get("obfuscation", {})
    export = data.get("export", {})
    device = data.get("device", {})

    api_base = env.get("PINME_API_BASE") or api.get("base", DEFAULT_API_BASE)
    car_base = (
        env.get("CAR_API_BASE")
        or env.get("PINME_API_BASE")
        or api.get("car_base", DEFAULT_CAR_API_BASE)
    )
    auth_file = Path(env.get("PINME_AUTH_FILE") or auth.get("auth_file", DEFAULT_AUTH_FILE)).expanduser()

    return PinmeConfig(
        api_base=api_base.rstrip("/"),
        car_base=car_base.rstrip("/"),
        upload_base=env.get("PINME_UPLOAD_BASE") or api.get("upload_base"),
        check_domain_path=env.get("PINME_CHECK_DOMAIN_PATH")
        or api.get("check_domain_path", DEFAULT_CHECK_DOMAIN_PATH),
        preview_url=env.get("IPFS_PREVIEW_URL") or api.get("preview_url", ""),
        secret_key=env.get("SECRET_KEY") or obfuscation.get("secret_key"),
        auth_file=auth_file,
        credential=_load_credential(auth_file),
        device_id_file=Path(device.get("id_file", DEFAULT_DEVICE_ID_FILE)).expanduser(),
        export_interval=float(export.get("interval", DEFAULT_EXPORT_INTERVAL)),
        export_max_attempts=_optional_int(export.get("max_attempts")),
    )


def get_device_id(id_file: Path = DEFAULT_DEVICE_ID_FILE) -> str:
    """Return the persisted device id, creating one on first use."""
    if id_file.exists():
        device_id = id_file.read_text().strip()
        if device_id:
            return device_id

    device_id = uuid.uuid4().hex
    id_file.parent.mkdir(parents=True, exist_ok=True)
    id_file.write_text(device_id + "\n")
    return device_id
