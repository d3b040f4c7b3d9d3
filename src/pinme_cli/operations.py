# Author: PB and Claude
# Date: 2026-10-18
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ---
# src/pinme_cli/operations.py

"""
Pinme Operations

High-level workflows: upload with optional domain bind, VIP entitlement,
CAR export. These functions take ready-made clients and return typed results.
"""

import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional

from pinme_cli import domains
from pinme_cli.config import Credential, PinmeConfig
from pinme_cli.domains import ValidationError
from pinme_cli.obfuscate import obfuscate
from pinme_cli.pinme_api import (
    CredentialExpired,
    PinmeClient,
    RemoteError,
    UploadClient,
    UploadError,
)
from pinme_cli.types import (
    BindResult,
    DeployResult,
    DomainAvailability,
    DomainDescriptor,
    DomainRecord,
    ExportStatus,
    ExportTask,
    RC_SUCCESS,
    RC_BIND_FAILED,
    RC_FAILED,
    RC_CONFIG_ERROR,
    RC_CREDENTIAL_EXPIRED,
)

logger = logging.getLogger(__name__)

DNS_SETUP_GUIDE = "https://pinme.eth.limo/#/docs?id=custom-domain"
LOGIN_HINT = "Please login first: put 'address:token' in your auth file"


class PinmeError(Exception):
    """Base exception for Pinme operations."""
    pass


class ConfigError(PinmeError):
    """Raised when config or credential is missing."""
    pass


class PathNotFound(PinmeError):
    pass


class EntitlementDenied(PinmeError):
    pass


class DomainUnavailable(PinmeError):
    pass


class UploadFailed(PinmeError):
    pass


class BindFailed(PinmeError):
    pass


class ExportFailed(PinmeError):
    pass


def _silent(message: str, err: bool = False) -> None:
    logger.info(message)


def get_client(config: PinmeConfig) -> PinmeClient:
    """Create a PinmeClient from config."""
    return PinmeClient(
        api_base=config.api_base,
        car_base=config.car_base,
        credential=config.credential,
        check_domain_path=config.check_domain_path,
        auth_file=config.auth_file,
    )


def get_uploader(config: PinmeConfig, device_id: str = None) -> UploadClient:
    """Create an UploadClient from config."""
    return UploadClient(
        config.get_upload_base(),
        credential=config.credential,
        device_id=device_id,
    )


def check_entitlement(client: PinmeClient, echo: Callable = None) -> bool:
    """
    True if the account may bind domains.

    Query failures count as entitled (the bind call decides); an expired
    credential is raised.

    Raises:
        CredentialExpired: If the credential was rejected
    """
    echo = echo or _silent
    echo("Checking VIP status...")
    try:
        response = client.is_vip()
    except RemoteError as e:
        logger.warning(f"VIP status check failed: {e}")
        echo("Failed to check VIP status, continuing...")
        return True

    data = response.get("data")
    if not isinstance(data, dict) or not data.get("is_vip"):
        return False
    echo("VIP verified.")
    return True


def check_domain(client: PinmeClient, descriptor: DomainDescriptor) -> DomainAvailability:
    """
    Validate (DNS names only) and probe availability for a classified domain.

    Raises:
        ValidationError: If a DNS name has bad syntax
        CredentialExpired: If the credential was rejected
    """
    if descriptor.is_dns:
        domains.validate_dns(descriptor.raw)
    return client.check_domain_available(descriptor.display_name)


def _resolve_path(path) -> Path:
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise PathNotFound(f"path {path} does not exist")
    return resolved


def _preflight_domain(
    descriptor: DomainDescriptor,
    client: PinmeClient,
    credential: Optional[Credential],
    echo: Callable,
) -> None:
    """Steps that must pass before anything is uploaded."""
    if descriptor.is_dns:
        domains.validate_dns(descriptor.raw)

    if credential is None:
        raise ConfigError(LOGIN_HINT)

    if not check_entitlement(client, echo):
        raise EntitlementDenied("Domain binding requires VIP. Please upgrade to VIP first.")

    availability = client.check_domain_available(descriptor.display_name)
    if not availability.is_valid:
        raise DomainUnavailable(
            f"Domain not available: {availability.error or 'unknown reason'}"
        )
    echo(f"Domain available: {descriptor.display_name}")


def _upload(uploader: UploadClient, path: Path, echo: Callable) -> str:
    echo(f"uploading {path} to ipfs...")
    try:
        content_hash = uploader.upload(path)
    except (UploadError, OSError) as e:
        raise UploadFailed(f"Upload failed: {e}")
    if not content_hash:
        raise UploadFailed("Upload failed: no content hash returned")
    return content_hash


def _bind(client: PinmeClient, descriptor: DomainDescriptor, content_hash: str, echo: Callable) -> str:
    """Dispatch on descriptor.is_dns. Returns the visit URL."""
    name = descriptor.display_name
    try:
        if descriptor.is_dns:
            echo("Binding DNS domain...")
            response = client.bind_dns_domain(name, content_hash)
            if response.get("code") != 200:
                raise BindFailed(f"DNS binding failed: {response.get('msg') or 'unknown error'}")
        else:
            echo("Binding Pinme subdomain...")
            if not client.bind_subdomain(name, content_hash):
                raise BindFailed("Binding failed. Please try again later.")
    except RemoteError as e:
        raise BindFailed(f"Binding failed: {e}")
    return domains.visit_url(descriptor)


def bind_domain(
    client: PinmeClient,
    descriptor: DomainDescriptor,
    content_hash: str,
    echo: Callable = None,
) -> BindResult:
    """
    Bind an uploaded content hash to a classified domain.

    Returns:
        BindResult; success=False carries the failure message

    Raises:
        CredentialExpired: If the credential was rejected
    """
    echo = echo or _silent
    try:
        url = _bind(client, descriptor, content_hash, echo)
    except BindFailed as e:
        echo(str(e), err=True)
        return BindResult(
            success=False,
            visit_url="",
            domain=descriptor.display_name,
            is_dns=descriptor.is_dns,
            error=str(e),
        )

    if descriptor.is_dns:
        echo(f"DNS bind success: {descriptor.display_name}")
    else:
        echo(f"Bind success: {descriptor.display_name}")
    echo(f"Visit: {url}")
    if descriptor.is_dns:
        echo(f"DNS Setup Guide: {DNS_SETUP_GUIDE}")
    return BindResult(success=True, visit_url=url, domain=descriptor.display_name, is_dns=descriptor.is_dns)


def deploy(
    path,
    client: PinmeClient,
    uploader: UploadClient,
    domain: str = None,
    force_dns: bool = False,
    credential: Credential = None,
    secret_key: str = None,
    device_id: str = None,
    preview_base: str = "",
    echo: Callable = None,
) -> DeployResult:
    """
    Upload a file or directory and optionally bind it to a domain.

    Steps run in order and stop at the first failure: resolve path, classify
    and validate domain, VIP check, availability check, upload, preview link,
    bind. Nothing is rolled back; a failed bind keeps the preview link.

    Args:
        path: File or directory to upload
        client: PinmeClient for domain and VIP calls
        uploader: Upload transport
        domain: Subdomain label or DNS domain (None for upload only)
        force_dns: Treat domain as DNS even without a dot
        credential: Required when a domain is given
        secret_key: Secret for the preview-link token
        device_id: Device id mixed into the preview-link token
        preview_base: Prefix for the preview link
        echo: Called with (message, err=False) for progress output

    Returns:
        DeployResult. Never raises for workflow failures - check returncode:
        - 0 (RC_SUCCESS): Everything requested succeeded
        - 1 (RC_BIND_FAILED): Uploaded, but bind failed
        - 2 (RC_FAILED): Nothing uploaded
        - 3 (RC_CONFIG_ERROR): Domain syntax or missing credential
        - 4 (RC_CREDENTIAL_EXPIRED): Credential rejected (hint already shown)
    """
    echo = echo or _silent
    result = DeployResult(path=str(path), returncode=RC_FAILED)

    try:
        resolved = _resolve_path(path)
        result.path = str(resolved)

        descriptor = domains.classify(domain, force_dns) if domain else None
        result.domain = descriptor
        if descriptor:
            _preflight_domain(descriptor, client, credential, echo)

        result.content_hash = _upload(uploader, resolved, echo)
        token = obfuscate(result.content_hash, secret_key, device_id)
        result.preview_url = f"{preview_base}{token}"
        echo(f"Upload success, CID: {result.content_hash}")
        echo(f"URL: {result.preview_url}")

        if descriptor:
            echo(f"Binding domain: {descriptor.display_name} with CID: {result.content_hash}")
            result.bind = bind_domain(client, descriptor, result.content_hash, echo)
            if not result.bind.success:
                result.returncode = RC_BIND_FAILED
                result.error = result.bind.error
                return result

    except CredentialExpired as e:
        result.returncode = RC_CREDENTIAL_EXPIRED
        result.error = str(e)
        return result
    except (ValidationError, ConfigError) as e:
        echo(str(e), err=True)
        result.returncode = RC_CONFIG_ERROR
        result.error = str(e)
        return result
    except PinmeError as e:
        echo(str(e), err=True)
        result.returncode = RC_FAILED
        result.error = str(e)
        return result

    result.returncode = RC_SUCCESS
    return result


def default_download_dir() -> Path:
    """Platform downloads directory (~/Downloads), or home if it is missing."""
    downloads = Path.home() / "Downloads"
    return downloads if downloads.is_dir() else Path.home()


def resolve_export_path(cid: str, output: Path = None) -> Path:
    """
    Where to write <cid>.car: explicit file, explicit directory, or downloads.

    An output that is an existing directory, ends with a path separator, or
    has no file suffix is a directory (created on download if missing).
    """
    filename = f"{cid}.car"
    if output is None:
        return default_download_dir() / filename
    trailing_sep = str(output).endswith(("/", os.sep))
    output = Path(output).expanduser()
    if output.is_dir() or trailing_sep or not output.suffix:
        return output / filename
    return output


def export_car(
    cid: str,
    uid: str,
    client: PinmeClient,
    output: Path = None,
    interval: float = 5.0,
    max_attempts: int = None,
    sleep: Callable[[float], None] = time.sleep,
    echo: Callable = None,
) -> Path:
    """
    Export a CID as a CAR archive and download it.

    Polls the export task every `interval` seconds until it completes or
    fails. With max_attempts=None polling only stops on a terminal state.

    Returns:
        Path of the downloaded archive

    Raises:
        ExportFailed: If the task failed, polling gave up, or download failed
        CredentialExpired: If the credential was rejected
    """
    echo = echo or _silent

    try:
        task = ExportTask.from_api(client.request_export(cid, uid))
    except RemoteError as e:
        raise ExportFailed(f"Failed to request CAR export: {e}")
    if not task.task_id:
        raise ExportFailed("Export request returned no task id")
    echo(f"Export task {task.task_id} created ({task.status.value})")

    attempts = 0
    while True:
        if max_attempts is not None and attempts >= max_attempts:
            raise ExportFailed(
                f"Export task {task.task_id} still {task.status.value} after {attempts} checks"
            )
        try:
            task = ExportTask.from_api(client.export_status(task.task_id))
        except RemoteError as e:
            raise ExportFailed(f"Failed to check export status: {e}")
        attempts += 1
        logger.debug(f"export_car: check {attempts} status={task.status.value}")
        if task.is_terminal:
            break
        echo(f"Export {task.status.value}, checking again in {interval:g}s...")
        sleep(interval)

    if task.status is ExportStatus.FAILED:
        raise ExportFailed(f"Export failed: {task.error or 'unknown error'}")
    if not task.download_url:
        raise ExportFailed("Export completed but no download URL was returned")

    dest = resolve_export_path(cid, output)
    echo(f"Downloading {task.download_url}")
    try:
        return client.download(task.download_url, dest)
    except RemoteError as e:
        raise ExportFailed(str(e))
    except OSError as e:
        raise ExportFailed(f"Cannot write {dest}: {e}")


def list_domains(client: PinmeClient) -> list[DomainRecord]:
    """
    List domains bound to the current account.

    Raises:
        CredentialExpired: If the credential was rejected
        RemoteError: If the service returns an error
    """
    return [DomainRecord.from_api(d) for d in client.my_domains() if isinstance(d, dict)]
