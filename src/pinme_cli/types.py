# Author: PB and Claude
# Date: 2026-10-18
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ---
# src/pinme_cli/types.py

"""
Pinme Type Definitions

Dataclasses for library return types with serialization support.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import json


@dataclass(frozen=True)
class DomainDescriptor:
    """A classified domain argument. Computed once per workflow."""
    raw: str                        # Name as supplied by the user (trimmed)
    is_dns: bool                    # True for user-owned DNS domains
    display_name: str               # raw without scheme and trailing slash

    def to_dict(self) -> dict:
        return {
            "raw": self.raw,
            "is_dns": self.is_dns,
            "display_name": self.display_name,
        }


@dataclass
class DomainAvailability:
    """Result of a domain availability probe."""
    is_valid: bool
    error: Optional[str] = None

    @classmethod
    def from_response(cls, data: dict) -> Optional["DomainAvailability"]:
        """Parse {is_valid} at top level or under "data". None if neither."""
        if not isinstance(data, dict):
            return None
        if isinstance(data.get("is_valid"), bool):
            return cls(is_valid=data["is_valid"], error=data.get("error"))
        nested = data.get("data")
        if isinstance(nested, dict) and isinstance(nested.get("is_valid"), bool):
            return cls(is_valid=nested["is_valid"], error=nested.get("error"))
        return None


@dataclass
class DomainRecord:
    """A domain bound to the current account."""
    domain_name: str
    domain_type: int = 0
    bind_time: Optional[int] = None
    expire_time: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "domain_name": self.domain_name,
            "domain_type": self.domain_type,
            "bind_time": self.bind_time,
            "expire_time": self.expire_time,
        }

    @classmethod
    def from_api(cls, data: dict) -> "DomainRecord":
        return cls(
            domain_name=data.get("domain_name", ""),
            domain_type=data.get("domain_type", 0),
            bind_time=data.get("bind_time"),
            expire_time=data.get("expire_time"),
        )


class ExportStatus(Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: str) -> "ExportStatus":
        # Unknown states are treated as still running
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.PROCESSING


@dataclass
class ExportTask:
    """A CAR export job on the remote service."""
    task_id: str
    cid: str
    status: ExportStatus
    download_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ExportStatus.COMPLETED, ExportStatus.FAILED)

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "cid": self.cid,
            "status": self.status.value,
            "download_url": self.download_url,
            "error": self.error,
        }

    @classmethod
    def from_api(cls, data: dict) -> "ExportTask":
        """Create from /car/export or /car/export/status "data" payload."""
        if not isinstance(data, dict):
            data = {}
        return cls(
            task_id=data.get("task_id", ""),
            cid=data.get("cid", ""),
            status=ExportStatus.parse(data.get("status", "")),
            download_url=data.get("download_url") or None,
            error=data.get("error") or data.get("msg") or None,
        )


@dataclass
class BindResult:
    """Result of binding a content hash to a domain."""
    success: bool
    visit_url: str
    domain: str
    is_dns: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "visit_url": self.visit_url,
            "domain": self.domain,
            "is_dns": self.is_dns,
            "error": self.error,
        }


# Return codes for DeployResult
RC_SUCCESS = 0              # Upload (and bind, if requested) succeeded
RC_BIND_FAILED = 1          # Upload succeeded, domain bind failed
RC_FAILED = 2               # Nothing deployed (path, upload, availability, VIP)
RC_CONFIG_ERROR = 3         # Bad input or config (domain syntax, missing credential)
RC_CREDENTIAL_EXPIRED = 4   # Credential rejected by the service


@dataclass
class DeployResult:
    """Result of an upload, with optional domain bind."""
    path: str                               # Path as given or resolved
    returncode: int                         # See RC_* above
    content_hash: Optional[str] = None      # Root CID from the upload
    preview_url: Optional[str] = None       # Preview link with obfuscated hash
    domain: Optional[DomainDescriptor] = None
    bind: Optional[BindResult] = None
    error: Optional[str] = None             # Error message if returncode != 0

    @property
    def ok(self) -> bool:
        """True if every requested step succeeded."""
        return self.returncode == RC_SUCCESS

    @property
    def uploaded(self) -> bool:
        return self.content_hash is not None

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "returncode": self.returncode,
            "content_hash": self.content_hash,
            "preview_url": self.preview_url,
            "domain": self.domain.to_dict() if self.domain else None,
            "bind": self.bind.to_dict() if self.bind else None,
            "error": self.error,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
