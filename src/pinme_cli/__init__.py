# Author: PB and Claude
# Date: 2026-10-18
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ---
# src/pinme_cli/__init__.py

"""
Pinme CLI Library

Upload files to IPFS through the Pinme pinning service, bind the result to
a Pinme subdomain or your own DNS domain, and export content as CAR files.

Basic usage:
    from pinme_cli import deploy, get_client, get_uploader, load_config

    config = load_config()
    result = deploy(
        "./dist",
        client=get_client(config),
        uploader=get_uploader(config),
        domain="my-site",
        credential=config.credential,
    )
    print(result.content_hash, result.bind.visit_url)

For more control:
    from pinme_cli.domains import classify, validate_dns
    from pinme_cli.obfuscate import obfuscate
    from pinme_cli.operations import export_car, check_entitlement
"""

# Config
from pinme_cli.config import (
    Credential,
    PinmeConfig,
    get_device_id,
    load_config,
)

# Types
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

# Domains and obfuscation
from pinme_cli.domains import ValidationError, classify, validate_dns
from pinme_cli.obfuscate import obfuscate

# Clients
from pinme_cli.pinme_api import (
    CredentialExpired,
    PinmeAPIError,
    PinmeClient,
    RemoteError,
    UploadClient,
    UploadError,
)

# Operations
from pinme_cli.operations import (
    bind_domain,
    check_domain,
    check_entitlement,
    deploy,
    export_car,
    get_client,
    get_uploader,
    list_domains,
    BindFailed,
    ConfigError,
    DomainUnavailable,
    EntitlementDenied,
    ExportFailed,
    PathNotFound,
    PinmeError,
    UploadFailed,
)

# CLI
from pinme_cli.cli import cli

__all__ = [
    # Config
    "Credential",
    "PinmeConfig",
    "get_device_id",
    "load_config",
    # Types
    "BindResult",
    "DeployResult",
    "DomainAvailability",
    "DomainDescriptor",
    "DomainRecord",
    "ExportStatus",
    "ExportTask",
    "RC_SUCCESS",
    "RC_BIND_FAILED",
    "RC_FAILED",
    "RC_CONFIG_ERROR",
    "RC_CREDENTIAL_EXPIRED",
    # Domains and obfuscation
    "ValidationError",
    "classify",
    "validate_dns",
    "obfuscate",
    # Clients
    "CredentialExpired",
    "PinmeAPIError",
    "PinmeClient",
    "RemoteError",
    "UploadClient",
    "UploadError",
    # Operations
    "bind_domain",
    "check_domain",
    "check_entitlement",
    "deploy",
    "export_car",
    "get_client",
    "get_uploader",
    "list_domains",
    # Exceptions
    "BindFailed",
    "ConfigError",
    "DomainUnavailable",
    "EntitlementDenied",
    "ExportFailed",
    "PathNotFound",
    "PinmeError",
    "UploadFailed",
    # CLI
    "cli",
]

__version__ = "0.1.0"
