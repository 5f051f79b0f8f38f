"""Provisioning CLI commands module.

This module provides the create, delete and list commands that drive a
provisioning run against the connection management service.

Exit Codes:
    0: Success
    1: Configuration, certificate, metadata or signature verification error
    2: Connection management call failed (run aborted)
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from cryptography import x509

from metadata_provisioner.config.schema import Config
from metadata_provisioner.metadata.certificates import load_pem_certificate
from metadata_provisioner.metadata.walker import enumerate_entities, parse_metadata
from metadata_provisioner.models.responses import ProvisioningReport
from metadata_provisioner.provisioning.orchestrator import (
    MetadataProvisioner,
    ProvisioningMode,
    describe_entity,
)
from metadata_provisioner.transport.connection_manager import (
    ConnectionManagerClient,
    DryRunConnectionManager,
)
from metadata_provisioner.transport.metadata_source import fetch_metadata
from metadata_provisioner.utils.exceptions import ProvisionerError, TransportError

logger = logging.getLogger(__name__)

metadata_option = click.option(
    "--metadata",
    "-m",
    "metadata_location",
    type=str,
    default=None,
    help="Metadata URL or file path (overrides config)",
)

cert_option = click.option(
    "--cert",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help=(
        "PEM certificate to verify the metadata signature (overrides config). "
        "SHA-1 signed metadata also needs MDP_ALLOW_LEGACY_ALGORITHMS=true"
    ),
)

dry_run_option = click.option(
    "--dry-run",
    is_flag=True,
    help="Build connections without calling the connection management service",
)


@click.command(name="create")
@dry_run_option
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="With --dry-run: write each connection document to this directory",
)
@metadata_option
@cert_option
@click.pass_context
def create(
    ctx: click.Context,
    dry_run: bool,
    output_dir: Optional[Path],
    metadata_location: Optional[str],
    cert: Optional[Path],
) -> None:
    """Create (or replace) one connection per role of every entity.

    Examples:
        # Provision from the configured metadata location
        $ metadata-provisioner create

        # Inspect the generated connection documents first
        $ metadata-provisioner create --dry-run --output-dir out/
    """
    if output_dir is not None and not dry_run:
        raise click.UsageError("--output-dir requires --dry-run")
    _run(ctx, ProvisioningMode.CREATE, dry_run, output_dir, metadata_location, cert)


@click.command(name="delete")
@dry_run_option
@metadata_option
@cert_option
@click.pass_context
def delete(
    ctx: click.Context,
    dry_run: bool,
    metadata_location: Optional[str],
    cert: Optional[Path],
) -> None:
    """Delete the connections of every entity in the metadata document.

    Example:
        $ metadata-provisioner delete --metadata InCommon-metadata.xml
    """
    _run(ctx, ProvisioningMode.DELETE, dry_run, None, metadata_location, cert)


@click.command(name="list")
@metadata_option
@click.pass_context
def list_entities(ctx: click.Context, metadata_location: Optional[str]) -> None:
    """List the entities of a metadata document and their roles.

    Nothing is sent to the connection management service and the signature
    is not checked.
    """
    try:
        config_obj = _config_with_overrides(ctx, metadata_location, None)
        document = parse_metadata(fetch_metadata(config_obj.metadata.location))
        entities = enumerate_entities(document)
    except ProvisionerError as e:
        logger.error(f"Listing failed: {e}")
        click.echo(click.style("✗ Error: ", fg="red", bold=True) + str(e), err=True)
        sys.exit(1)

    for entity in entities:
        click.echo(describe_entity(entity, config_obj))
    click.echo(f"\n{len(entities)} entities")


def _config_with_overrides(
    ctx: click.Context,
    metadata_location: Optional[str],
    cert: Optional[Path],
) -> Config:
    """Apply CLI option overrides to the configuration loaded by the group.

    Precedence: CLI flags > environment > config file > defaults.
    """
    config_obj: Config = ctx.find_root().obj["config"]

    updates = {}
    if metadata_location:
        logger.info(f"Overriding metadata location: {metadata_location}")
        updates["location"] = metadata_location
    if cert:
        logger.info(f"Overriding metadata certificate: {cert}")
        updates["certificate_path"] = cert

    if not updates:
        return config_obj
    return config_obj.model_copy(
        update={"metadata": config_obj.metadata.model_copy(update=updates)}
    )


def _load_certificate(config_obj: Config) -> Optional[x509.Certificate]:
    if config_obj.metadata.certificate_path is None:
        logger.warning(
            "No metadata certificate configured: the signature will be removed "
            "without being verified."
        )
        return None
    return load_pem_certificate(config_obj.metadata.certificate_path)


def _run(
    ctx: click.Context,
    mode: ProvisioningMode,
    dry_run: bool,
    output_dir: Optional[Path],
    metadata_location: Optional[str],
    cert: Optional[Path],
) -> None:
    client = None
    try:
        config_obj = _config_with_overrides(ctx, metadata_location, cert)
        certificate = _load_certificate(config_obj)
        metadata_bytes = fetch_metadata(config_obj.metadata.location)

        if dry_run:
            client = DryRunConnectionManager(output_dir)
        else:
            client = ConnectionManagerClient(config_obj.connection_manager)

        _display_header(mode, config_obj, dry_run)
        report = MetadataProvisioner(config_obj, client).run(mode, metadata_bytes, certificate)

    except TransportError as e:
        logger.error(f"Transaction error: {e}")
        click.echo(click.style("✗ Transaction Error: ", fg="red", bold=True) + str(e), err=True)
        if e.response is not None and e.response.response_body:
            click.echo(f"\nResponse:\n{e.response.response_body}", err=True)
        click.echo(
            "\nThe run was aborted; connections processed before this one remain in place.",
            err=True,
        )
        sys.exit(2)

    except ProvisionerError as e:
        logger.error(f"{type(e).__name__}: {e}")
        click.echo(click.style(f"✗ {type(e).__name__}: ", fg="red", bold=True) + str(e), err=True)
        sys.exit(1)

    finally:
        if client is not None:
            client.close()

    _display_summary(report, dry_run)


def _display_header(mode: ProvisioningMode, config_obj: Config, dry_run: bool) -> None:
    click.echo()
    click.echo(click.style("=" * 80, fg="cyan"))
    title = f"METADATA PROVISIONING: {mode.value.upper()}"
    if dry_run:
        title += " (DRY RUN)"
    click.echo(click.style(title, fg="cyan", bold=True))
    click.echo(click.style("=" * 80, fg="cyan"))
    click.echo()
    click.echo(f"Metadata:  {config_obj.metadata.location}")
    click.echo(f"Endpoint:  {config_obj.connection_manager.url}")
    click.echo()


def _display_summary(report: ProvisioningReport, dry_run: bool) -> None:
    verb = "saved" if report.mode == ProvisioningMode.CREATE.value else "deleted"

    for record in report.connections:
        label = f" {record.name}" if record.name else ""
        click.echo(
            click.style("✓", fg="green") + f" {record.role.value:<3} {record.entity_id}{label}"
        )

    click.echo()
    click.echo(click.style("SUMMARY", bold=True))
    click.echo(f"  Signature verified:  {'yes' if report.signature_verified else 'no'}")
    click.echo(f"  Entities seen:       {report.entities_seen}")
    click.echo(f"  Entities skipped:    {len(report.entities_skipped)}")
    click.echo(f"  Connections {verb}:  {report.connection_count}{' (dry run)' if dry_run else ''}")
    click.echo(f"  Duration:            {report.duration_seconds:.1f}s")
