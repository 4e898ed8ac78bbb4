"""
Ensis CLI

Commands:
  deploy       - Deploy the Ensis contract
  serve        - Run the read or write endpoint locally
  encrypt-key  - Encrypt the signer's private key for PRIVATE_KEY
  mcp          - Run the MCP server over stdio
"""

import os
import sys

import click

from ensis_gateway.config_manager import get_config_manager, reset_config_manager
from ensis_gateway.crypto import EncryptionManager
from ensis_gateway.exceptions import EnsisException
from ensis_gateway.logging_config import setup_logging_from_config
from ensis_gateway.validators import validate_private_key

VERSION = "0.1.0"


@click.group()
@click.version_option(version=VERSION, prog_name="ensis")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="YAML config file (default: $ENSIS_CONFIG_PATH or ensis_config.yaml)",
)
def cli(config_path: str | None) -> None:
    """Call contract functions by name through the Ensis contract."""
    if config_path:
        os.environ["ENSIS_CONFIG_PATH"] = config_path
        reset_config_manager()
    setup_logging_from_config(get_config_manager())


@cli.command()
@click.option(
    "--artifact",
    type=click.Path(dir_okay=False),
    help="Compiled contract artifact (default: deploy.artifact, else the Hardhat "
    "artifact of deploy.contract_name)",
)
@click.option(
    "--initial-price",
    type=click.IntRange(min=0),
    help="initialPrice constructor argument in wei (default: deploy.initial_price)",
)
@click.option(
    "--receipt-timeout",
    type=click.IntRange(min=1),
    help="Seconds to wait for the deployment receipt",
)
def deploy(
    artifact: str | None, initial_price: int | None, receipt_timeout: int | None
) -> None:
    """Deploy the Ensis contract."""
    from ensis_gateway.deploy import deploy_from_config

    try:
        result = deploy_from_config(
            get_config_manager(),
            artifact=artifact,
            initial_price=initial_price,
            receipt_timeout=receipt_timeout,
        )
    except EnsisException as exc:
        click.echo(f"Deployment failed: {exc.message}", err=True)
        if exc.hint:
            click.echo(f"  Hint: {exc.hint}", err=True)
        sys.exit(1)

    click.echo(f"Contract deployed at {result['contract_address']}")
    click.echo(f"  tx:    {result['tx_hash']}")
    click.echo(f"  block: {result['block_number']}")


@cli.command()
@click.argument("endpoint", type=click.Choice(["read", "write"]))
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(endpoint: str, host: str, port: int) -> None:
    """Run the read or write endpoint with uvicorn."""
    import uvicorn

    from ensis_gateway.endpoints import create_app

    uvicorn.run(create_app(endpoint), host=host, port=port)


@cli.command("encrypt-key")
@click.option("--private-key", prompt=True, hide_input=True, help="0x-prefixed hex key")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Password used to derive the encryption key",
)
def encrypt_key(private_key: str, password: str) -> None:
    """Encrypt the signer's private key and print the environment to set."""
    try:
        plain = validate_private_key(private_key.strip(), encrypted=False)
        manager = EncryptionManager(password)
        token = manager.encrypt(plain)
    except EnsisException as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    click.echo("ENSIS_PRIVATE_KEY_ENCRYPTED=true")
    click.echo(f"PRIVATE_KEY={token}")
    click.echo(f"ENSIS_KEY_SALT={manager.get_salt_base64()}")
    click.echo("ENSIS_KEY_PASSWORD=<the password you entered>")


@cli.command()
def mcp() -> None:
    """Run the MCP server over stdio."""
    from ensis_gateway.server import main

    # stdout carries the MCP protocol
    setup_logging_from_config(get_config_manager(), stream=sys.stderr)
    main()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
