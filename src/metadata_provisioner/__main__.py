"""Entry point for running metadata_provisioner as a module.

This allows the package to be executed as:
    python -m metadata_provisioner
"""

from metadata_provisioner.cli.main import cli

if __name__ == "__main__":
    cli()
