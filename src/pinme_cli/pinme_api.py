"""
HTTP clients for the Pinme pinning service.

PinmeClient wraps the JSON endpoints (domains, VIP, CAR export). UploadClient
streams files and directories to the service's /add endpoint.

All JSON calls pass through PinmeClient._request, which collapses HTTP status
codes, service codes and error text into two outcomes: CredentialExpired or
RemoteError.

Debug logging:
    Enable with: PINME_DEBUG=1 or by setting log level to DEBUG
    Example: PINME_DEBUG=1 pinme upload ./dist
"""

import json
import logging
import os
from enum import Enum
from pathlib import Path

import click
import requests
from requests_toolbelt import MultipartEncoder

from pinme_cli.config import Credential
from pinme_cli.types import DomainAvailability

DEFAULT_TIMEOUT = 20
USER_AGENT = "Pinme-CLI"

# Failure shapes that mean the stored credential is no longer accepted
TOKEN_EXPIRED_CODES = (
    401,
    403,
    10001,
    10002,
    20001,
    "TOKEN_EXPIRED",
    "AUTH_FAILED",
)
TOKEN_EXPIRED_MESSAGES = (
    "token expired",
    "invalid token",
    "authentication failed",
    "auth failed",
    "unauthorized",
    "登录",
    "过期",
    "token",
    "鉴权",
)

EXPIRED_HINT = (
    "\n⚠️  Token has expired or is invalid.\n"
    "Please update your credential ('address:token') in {auth_file}\n"
)

# Configure logger for this module
logger = logging.getLogger(__name__)

# Enable debug logging via environment variable
if os.environ.get("PINME_DEBUG"):
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    logger.setLevel(logging.DEBUG)


class PinmeAPIError(Exception):
    """Raised when the Pinme API returns an error."""

    def __init__(self, message: str, status_code: int = None, response: dict = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class CredentialExpired(PinmeAPIError):
    """The service rejected the credential. The user has already been told."""
    pass


class RemoteError(PinmeAPIError):
    """Any other failure from the service or the network."""
    pass


class UploadError(PinmeAPIError):
    """Raised when the upload transport fails."""
    pass


class FailureKind(Enum):
    CREDENTIAL_EXPIRED = "credential_expired"
    REMOTE = "remote"


def classify_failure(status_code: int = None, code=None, message: str = None) -> FailureKind:
    """
    Map a failed call onto FailureKind.

    Args:
        status_code: HTTP status, if a response was received
        code: Service-specific "code" from the response body
        message: Error text (body msg/message or exception text)
    """
    if status_code is not None and status_code in TOKEN_EXPIRED_CODES:
        return FailureKind.CREDENTIAL_EXPIRED
    if code is not None and code in TOKEN_EXPIRED_CODES:
        return FailureKind.CREDENTIAL_EXPIRED
    lower = (message or "").lower()
    if any(m in lower for m in TOKEN_EXPIRED_MESSAGES):
        return FailureKind.CREDENTIAL_EXPIRED
    return FailureKind.REMOTE


def _body_message(body) -> str:
    if isinstance(body, dict):
        return body.get("msg") or body.get("message") or ""
    return ""


class PinmeClient:
    """HTTP client for the Pinme JSON API."""

    def __init__(
        self,
        api_base: str,
        car_base: str = None,
        credential: Credential = None,
        check_domain_path: str = "/check_domain",
        timeout: float = DEFAULT_TIMEOUT,
        auth_file: Path = None,
    ):
        """
        Initialize Pinme client.

        Args:
            api_base: Base URL of the v4 API (domains, VIP)
            car_base: Base URL of the CAR export API (defaults to api_base)
            credential: Account credential, attached to every request
            check_domain_path: First path tried by check_domain_available()
            timeout: Per-request timeout in seconds
            auth_file: Shown in the expired-credential hint
        """
        self.api_base = api_base.rstrip("/")
        self.car_base = (car_base or api_base).rstrip("/")
        self.credential = credential
        self.check_domain_path = check_domain_path
        self.timeout = timeout
        self.auth_file = auth_file
        self.expired_hint_shown = False
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "*/*",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        })
        if credential:
            self.session.headers.update(credential.to_headers())

    def _expired(self, message: str, status_code: int = None, response: dict = None) -> CredentialExpired:
        """Show the remediation hint (once) and build the error to raise."""
        if not self.expired_hint_shown:
            self.expired_hint_shown = True
            click.echo(
                EXPIRED_HINT.format(auth_file=self.auth_file or "your auth file"),
                err=True,
            )
        return CredentialExpired(message or "Token expired", status_code, response)

    def _request(self, method: str, url: str, **kwargs) -> dict:
        """Make HTTP request and return the decoded JSON body."""
        kwargs.setdefault("timeout", self.timeout)
        logger.debug(f"Request: {method} {url} params={kwargs.get('params')}")

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.debug(f"Request failed: {e}")
            if classify_failure(message=str(e)) is FailureKind.CREDENTIAL_EXPIRED:
                raise self._expired(str(e))
            raise RemoteError(f"Network error: {e}")

        logger.debug(f"Response status: {response.status_code}")
        body_preview = response.text[:2000] if response.text else "(empty)"
        logger.debug(f"Response body: {body_preview}")

        try:
            body = response.json()
        except ValueError:
            body = None

        code = body.get("code") if isinstance(body, dict) else None
        message = _body_message(body) or response.text

        if response.status_code >= 400:
            kind = classify_failure(response.status_code, code, message)
            if kind is FailureKind.CREDENTIAL_EXPIRED:
                raise self._expired(message, response.status_code, body)
            raise RemoteError(message or f"HTTP {response.status_code}", response.status_code, body)

        if body is None:
            raise RemoteError(f"Invalid JSON response from {url}", response.status_code)
        if not isinstance(body, dict):
            raise RemoteError(f"Unexpected response from {url}: {body!r}", response.status_code)

        # Some endpoints report auth failures inside a 200 body
        if code is not None and code in TOKEN_EXPIRED_CODES:
            raise self._expired(message, response.status_code, body)

        return body

    def _api(self, method: str, endpoint: str, **kwargs) -> dict:
        return self._request(method, f"{self.api_base}{endpoint}", **kwargs)

    def _car(self, method: str, endpoint: str, **kwargs) -> dict:
        return self._request(method, f"{self.car_base}{endpoint}", **kwargs)

    def check_domain_available(self, domain_name: str) -> DomainAvailability:
        """
        Ask whether a domain name can be bound.

        Tries the configured path, then /check_domain_available. When no path
        gives a usable answer the domain is reported available and the bind
        call makes the final decision.

        Raises:
            CredentialExpired: If the credential was rejected
        """
        paths = [self.check_domain_path]
        if "/check_domain_available" not in paths:
            paths.append("/check_domain_available")

        for path in paths:
            try:
                body = self._api("POST", path, json={"domain_name": domain_name})
            except RemoteError as e:
                logger.debug(f"check_domain_available: {path} failed: {e}")
                continue
            result = DomainAvailability.from_response(body)
            if result is not None:
                return result
            logger.debug(f"check_domain_available: unexpected response from {path}: {body}")

        return DomainAvailability(is_valid=True)

    def bind_subdomain(self, domain_name: str, content_hash: str) -> bool:
        """Bind content to <domain_name>.pinit.eth.limo. True on success."""
        body = self._api(
            "POST",
            "/bind_pinme_domain",
            json={"domain_name": domain_name, "hash": content_hash},
        )
        return body.get("code") == 200

    def bind_dns_domain(self, domain_name: str, content_hash: str) -> dict:
        """
        Bind content to a user-owned DNS domain.

        Returns the raw response: {code, msg, data: {domain_name, hash, bind_time}}.
        """
        return self._api(
            "POST",
            "/bind_dns",
            json={"domain_name": domain_name, "hash": content_hash},
        )

    def is_vip(self) -> dict:
        """
        Query account tier.

        Returns the raw response: {code, msg, data: {is_vip, vip_expire_time}}.
        """
        return self._api("GET", "/is_vip")

    def my_domains(self) -> list:
        """List domains bound to this account."""
        body = self._api("GET", "/my_domains")
        if body.get("code") != 200:
            raise RemoteError(_body_message(body) or "Failed to list domains", response=body)

        data = body.get("data")
        if isinstance(data, list):
            return data
        # Some deployments wrap the list as {"list": [...]}
        if isinstance(data, dict) and isinstance(data.get("list"), list):
            return data["list"]
        return []

    def request_export(self, cid: str, uid: str) -> dict:
        """Start a CAR export. Returns {task_id, cid, status}."""
        body = self._car("POST", "/car/export", params={"cid": cid, "uid": uid})
        if body.get("code") == 200 and isinstance(body.get("data"), dict):
            return body["data"]
        raise RemoteError(_body_message(body) or "Failed to request CAR export", response=body)

    def export_status(self, task_id: str) -> dict:
        """Check a CAR export. Returns {task_id, cid, status, download_url}."""
        body = self._car("GET", "/car/export/status", params={"task_id": task_id})
        if body.get("code") == 200 and isinstance(body.get("data"), dict):
            return body["data"]
        raise RemoteError(_body_message(body) or "Failed to check export status", response=body)

    def download(self, url: str, dest: Path) -> Path:
        """
        Stream a file from url to dest.

        The download host is not the API, so no credential headers go with
        the request. Data is written to <dest>.part and only renamed to dest
        once the stream has finished.

        Raises:
            RemoteError: If the request or the stream fails
            OSError: If dest cannot be written
        """
        logger.debug(f"download: {url} -> {dest}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(dest.name + ".part")
        try:
            response = requests.get(
                url,
                stream=True,
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
            response.raise_for_status()
            with open(partial, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    f.write(chunk)
        except requests.exceptions.RequestException as e:
            partial.unlink(missing_ok=True)
            raise RemoteError(f"Download failed: {e}")
        except OSError:
            partial.unlink(missing_ok=True)
            raise
        partial.replace(dest)
        return dest


class UploadClient:
    """Streams files and directories to the pinning service."""

    def __init__(
        self,
        upload_base: str,
        credential: Credential = None,
        device_id: str = None,
        timeout: float = 3600,
    ):
        self.base_url = upload_base.rstrip("/")
        self.device_id = device_id
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT
        if credential:
            self.session.headers.update(credential.to_headers())

    def _collect_files(self, path: Path) -> list[tuple[Path, str]]:
        """(file, name in upload) pairs; directory names keep the top-level dir."""
        if path.is_file():
            return [(path, path.name)]
        base_path = path.parent
        return [
            (file_path, str(file_path.relative_to(base_path)))
            for file_path in sorted(path.rglob("*"))
            if file_path.is_file()
        ]

    def upload(self, path: Path) -> str:
        """
        Upload a file or directory.

        Returns:
            Root content hash (last entry of the NDJSON response)

        Raises:
            UploadError: If nothing could be uploaded
        """
        path = Path(path)
        if not (path.is_file() or path.is_dir()):
            raise UploadError(f"Path {path} is not a file or directory")

        files_to_add = self._collect_files(path)
        if not files_to_add:
            raise UploadError(f"No files to upload in {path}")
        logger.debug(f"upload: {len(files_to_add)} files from {path}")

        params = {"wrap-with-directory": "false"}
        if self.device_id:
            params["uid"] = self.device_id

        file_handles = []
        try:
            fields = []
            for file_path, rel_path in files_to_add:
                fh = open(file_path, "rb")
                file_handles.append(fh)
                fields.append(("file", (rel_path, fh, "application/octet-stream")))

            encoder = MultipartEncoder(fields=fields)
            logger.debug(f"upload: encoder content_length = {encoder.len}")

            response = self.session.post(
                f"{self.base_url}/add",
                params=params,
                data=encoder,
                headers={"Content-Type": encoder.content_type},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise UploadError(f"Upload failed: {e}")
        finally:
            for fh in file_handles:
                fh.close()

        if response.status_code >= 400:
            try:
                msg = _body_message(response.json()) or response.text
            except ValueError:
                msg = response.text
            raise UploadError(msg or f"HTTP {response.status_code}", response.status_code)

        entries = []
        try:
            for line in response.text.strip().split("\n"):
                if line:
                    entries.append(json.loads(line))
        except json.JSONDecodeError as e:
            raise UploadError(f"Invalid JSON response: {e}", response.status_code)

        if not entries:
            raise UploadError("No entries returned from upload (possible server error)")

        root = entries[-1]
        content_hash = root.get("cid") or root.get("Hash") or root.get("hash")
        if isinstance(content_hash, dict):
            content_hash = content_hash.get("/")
        if not content_hash:
            raise UploadError(f"Upload response has no content hash: {root}")
        return content_hash
