# Author: PB and Claude
# Date: 2026-10-18
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ---
# src/pinme_cli/cli.py

"""
Pinme Command Line Interface

Thin wrapper around the operations module.
"""

import json
from pathlib import Path
import re
import sys

import click
import requests

from pinme_cli import config as config_module
from pinme_cli import domains
from pinme_cli import operations
from pinme_cli.operations import PinmeError
from pinme_cli.pinme_api import CredentialExpired, PinmeAPIError


def echo(message: str, err: bool = False) -> None:
    click.echo(message, err=err)


def handle_api_error(func):
    """Decorator to catch API and connection errors."""
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CredentialExpired:
            # Hint was printed where the expiry was detected
            sys.exit(1)
        except PinmeAPIError as e:
            click.echo(f"Error: Pinme API error: {e}", err=True)
            sys.exit(1)
        except PinmeError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        except requests.exceptions.ConnectionError as e:
            msg = str(e)
            click.echo("Error: Could not connect to the Pinme service", err=True)
            if "host=" in msg:
                match = re.search(r"host='([^']+)'", msg)
                if match:
                    click.echo(f"  Host: {match.group(1)}", err=True)
            click.echo("  Check PINME_API_BASE or [api] base in config", err=True)
            sys.exit(1)
        except requests.exceptions.RequestException as e:
            click.echo(f"Error: Network error: {e}", err=True)
            sys.exit(1)
    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    return wrapper


def _load(config_file: Path) -> config_module.PinmeConfig:
    try:
        return config_module.load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        raise PinmeError(str(e))


def _require_credential(cfg: config_module.PinmeConfig) -> None:
    if cfg.credential is None:
        raise PinmeError(f"{operations.LOGIN_HINT} ({cfg.auth_file})")


def _run_deploy(
    cfg: config_module.PinmeConfig,
    path: str,
    domain: str,
    dns: bool,
    output_json: Path,
) -> None:
    """Shared by upload and bind, whether arguments were typed or prompted."""
    device_id = config_module.get_device_id(cfg.device_id_file)
    client = operations.get_client(cfg)
    uploader = operations.get_uploader(cfg, device_id=device_id)

    result = operations.deploy(
        path,
        client=client,
        uploader=uploader,
        domain=domain,
        force_dns=dns,
        credential=cfg.credential,
        secret_key=cfg.secret_key,
        device_id=device_id,
        preview_base=cfg.preview_url,
        echo=echo,
    )

    if output_json:
        with open(output_json, "w") as f:
            f.write(result.to_json())
        click.echo(f"result written to: {output_json}")

    if result.uploaded and result.ok:
        click.echo("\n🎉 upload successful, program exit")
    sys.exit(result.returncode)


CONFIG_FILE_OPTION = click.option(
    "--config-file",
    type=click.Path(exists=True, path_type=Path),
    help="Config file path (default: ~/.pinme/config.toml)",
)


@click.group()
@click.version_option(package_name="pinme-cli")
def cli():
    """Pinme CLI: upload files to IPFS and bind them to domains."""
    pass


@cli.command()
@click.argument("path", required=False)
@click.option("-d", "--domain", help="Domain to bind after upload (requires VIP)")
@click.option("-D", "--dns", is_flag=True, help="Force DNS domain mode (auto-detected from a dot)")
@CONFIG_FILE_OPTION
@click.option(
    "--output-json",
    type=click.Path(path_type=Path),
    help="Write full result as JSON to this file",
)
@handle_api_error
def upload(path: str, domain: str, dns: bool, config_file: Path, output_json: Path) -> None:
    """
    Upload a file or directory to IPFS.

    Prompts for the path when none is given.

    Examples:

        pinme upload ./my-website

        pinme upload ./dist --domain my-site

        pinme upload ./dist --domain example.com
    """
    cfg = _load(config_file)
    if not path:
        path = click.prompt("path to upload", default="", show_default=False).strip()
        if not path:
            raise PinmeError("No path given")
    _run_deploy(cfg, path, domain.strip() if domain else None, dns, output_json)


@cli.command()
@click.argument("path", required=False)
@click.option("-d", "--domain", help="Domain name to bind (e.g., my-site or example.com)")
@click.option("-D", "--dns", is_flag=True, help="Force DNS domain mode (auto-detected from a dot)")
@CONFIG_FILE_OPTION
@click.option(
    "--output-json",
    type=click.Path(path_type=Path),
    help="Write full result as JSON to this file",
)
@handle_api_error
def bind(path: str, domain: str, dns: bool, config_file: Path, output_json: Path) -> None:
    """
    Upload and bind to a domain (requires VIP).

    Names with a dot are DNS domains you own; names without one become
    https://<name>.pinit.eth.limo. Prompts for missing path or domain.
    """
    cfg = _load(config_file)
    _require_credential(cfg)

    if not path:
        path = click.prompt("Enter the path to upload and bind", default="", show_default=False)
    if not domain:
        domain = click.prompt(
            "Enter the domain to bind (e.g., my-site or example.com)",
            default="",
            show_default=False,
        )
    path = path.strip()
    domain = domain.strip()
    if not path or not domain:
        raise PinmeError("Missing parameters. Path and domain are required.")

    _run_deploy(cfg, path, domain, dns, output_json)


@cli.command("check-domain")
@click.argument("name", required=True)
@click.option("-D", "--dns", is_flag=True, help="Force DNS domain mode")
@CONFIG_FILE_OPTION
@handle_api_error
def check_domain(name: str, dns: bool, config_file: Path) -> None:
    """
    Check whether a domain can be bound.
    """
    cfg = _load(config_file)
    descriptor = domains.classify(name, dns)
    try:
        availability = operations.check_domain(operations.get_client(cfg), descriptor)
    except domains.ValidationError as e:
        raise PinmeError(str(e))

    kind = "DNS domain" if descriptor.is_dns else "subdomain"
    if availability.is_valid:
        click.echo(f"Domain available: {descriptor.display_name} ({kind})")
        click.echo(f"Visit URL after bind: {domains.visit_url(descriptor)}")
    else:
        click.echo(
            f"Domain not available: {availability.error or 'unknown reason'}",
            err=True,
        )
        sys.exit(1)


@cli.command("domains")
@CONFIG_FILE_OPTION
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
@handle_api_error
def list_domains(config_file: Path, as_json: bool) -> None:
    """
    List domains bound to your account.
    """
    cfg = _load(config_file)
    _require_credential(cfg)
    records = operations.list_domains(operations.get_client(cfg))

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return
    if not records:
        click.echo("No domains bound.")
        return
    for r in records:
        kind = "dns" if r.domain_type else "pinme"
        click.echo(f"  {r.domain_name}  ({kind})")


@cli.command()
@click.argument("cid", required=True)
@click.option("--uid", help="User id for the export (default: this device's id)")
@click.option(
    "-o",
    "--output",
    type=click.Path(),
    help="Output file or directory (default: ~/Downloads/<cid>.car)",
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    help="Give up after this many status checks (default: from config, else no limit)",
)
@CONFIG_FILE_OPTION
@handle_api_error
def export(cid: str, uid: str, output: str, max_attempts: int, config_file: Path) -> None:
    """
    Export a CID as a CAR archive and download it.

    Examples:

        pinme export bafybeigdyr...

        pinme export bafybeigdyr... -o ./backup/
    """
    cfg = _load(config_file)
    _require_credential(cfg)
    uid = uid or config_module.get_device_id(cfg.device_id_file)

    dest = operations.export_car(
        cid,
        uid,
        client=operations.get_client(cfg),
        output=output,
        interval=cfg.export_interval,
        max_attempts=max_attempts or cfg.export_max_attempts,
        echo=echo,
    )
    click.echo(f"CAR file saved to: {dest}")


@cli.command()
@CONFIG_FILE_OPTION
@click.option(
    "--validate-only",
    is_flag=True,
    help="Only validate config, don't display it",
)
def config(config_file: Path, validate_only: bool) -> None:
    """
    Display and validate Pinme configuration.

    Examples:

        pinme config

        pinme config --validate-only
    """
    config_path = config_file or config_module.DEFAULT_CONFIG

    try:
        cfg = config_module.load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    errors, warnings = cfg.validate()

    if not validate_only:
        click.echo(f"Config file: {config_path}")
        click.echo()
        click.echo("Settings:")
        click.echo(f"  api_base: {cfg.api_base}")
        click.echo(f"  car_base: {cfg.car_base}")
        click.echo(f"  upload_base: {cfg.get_upload_base()}")
        click.echo(f"  check_domain_path: {cfg.check_domain_path}")
        click.echo(f"  preview_url: {cfg.preview_url or '(not set)'}")
        click.echo(f"  secret_key: {'configured' if cfg.secret_key else '(not set)'}")
        click.echo(f"  credential: {cfg.credential.masked() if cfg.credential else '(not set)'}")
        click.echo(f"  export: interval={cfg.export_interval:g}s, "
                   f"max_attempts={cfg.export_max_attempts or 'unlimited'}")
        click.echo()

    if errors:
        click.echo("Errors:", err=True)
        for e in errors:
            click.echo(f"  ✗ {e}", err=True)
    if warnings:
        click.echo("Warnings:")
        for w in warnings:
            click.echo(f"  ⚠ {w}")
    if not errors and not warnings:
        click.echo("✓ Config is valid")

    sys.exit(1 if errors else 0)
