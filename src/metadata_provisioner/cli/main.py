"""Main CLI entry point for the metadata provisioner.

This module provides the main Click command group for the metadata-provisioner CLI.
"""

from pathlib import Path
from typing import Optional

import click

from metadata_provisioner import __version__
from metadata_provisioner.cli.provision_commands import create, delete, list_entities
from metadata_provisioner.config import load_config
from metadata_provisioner.logging_audit import configure_logging
from metadata_provisioner.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="metadata-provisioner")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
) -> None:
    """Metadata Provisioner - SAML federation metadata to connection sync.

    Creates or deletes one IDP and/or SP connection per entity listed in a
    SAML 2.0 metadata document.

    Common usage:

        # Show the entities a document would provision
        metadata-provisioner list --metadata InCommon-metadata.xml

        # Create connections, verifying the metadata signature
        metadata-provisioner create --cert certs/inc-md-cert.pem

        # Write the connection documents to disk instead of uploading them
        metadata-provisioner create --dry-run --output-dir out/

        # Remove the connections again
        metadata-provisioner delete

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose
    ctx.obj["log_file"] = log_file

    # Precedence: CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file

    configure_logging(
        level=log_level,
        log_file=log_file_path,
        redact_secrets=config_obj.logging.redact_secrets,
    )


cli.add_command(create)
cli.add_command(delete)
cli.add_command(list_entities)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        metadata-provisioner config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
    click.echo(f"\nConfiguration file: {config_file}")

    click.echo("\nMetadata:")
    click.echo(f"  Location:    {config_obj.metadata.location}")
    click.echo(f"  Certificate: {config_obj.metadata.certificate_path or 'Not configured (signature not verified)'}")
    click.echo(f"  Legacy algs: {config_obj.metadata.allow_legacy_algorithms}")

    click.echo("\nConnection management:")
    click.echo(f"  URL:         {config_obj.connection_manager.url}")
    click.echo(f"  Username:    {config_obj.connection_manager.username}")
    click.echo(f"  Password:    {'set' if config_obj.connection_manager.password else 'Not set'}")
    click.echo(f"  Verify TLS:  {config_obj.connection_manager.verify_tls}")
    click.echo(
        f"  Timeouts:    {config_obj.connection_manager.timeout_connect}s connect, "
        f"{config_obj.connection_manager.timeout_read}s read"
    )

    bindings = config_obj.connection.bindings.as_flags()
    click.echo("\nConnections:")
    click.echo(f"  Signing key: {config_obj.connection.signing_key_fingerprint}")
    click.echo(f"  Bindings:    {', '.join(name for name, on in bindings.items() if on) or 'none'}")
    click.echo(f"  Protocol:    {config_obj.connection.preferred_protocol}")
    click.echo(f"  IDP adapter: {config_obj.adapters.idp.instance_id}")
    click.echo(f"  SP adapter:  {config_obj.adapters.sp.instance_id}")

    click.echo("\nEntities:")
    click.echo(f"  Include:     {len(config_obj.entities.include) or 'all'}")
    click.echo(f"  Exclude:     {len(config_obj.entities.exclude)}")

    click.echo("\nLogging:")
    click.echo(f"  Level:       {config_obj.logging.level}")
    click.echo(f"  Log file:    {config_obj.logging.log_file}")
    click.echo(f"  Redact:      {config_obj.logging.redact_secrets}")


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"metadata-provisioner version {__version__}")


if __name__ == "__main__":
    cli()
