"""Administrative command-line interface."""

from __future__ import annotations

from pathlib import Path

import click
import structlog
from pydantic import ValidationError
from safir.asyncio import run_with_asyncio
from safir.click import display_help

from .config import Config
from .constants import CONFIG_PATH
from .factory import Factory
from .models.user import AppUser

__all__ = [
    "check_config",
    "find",
    "help",
    "main",
    "validate",
]

_config_path_option = click.option(
    "--config-path",
    envvar="LDAPSTORE_CONFIG_PATH",
    type=click.Path(path_type=Path),
    default=CONFIG_PATH,
    show_default=True,
    help="Application configuration file.",
)


def _load_config(config_path: Path) -> Config:
    try:
        config = Config.from_file(config_path)
    except OSError as e:
        raise click.ClickException(f"Cannot read {config_path}: {e!s}") from e
    except ValidationError as e:
        msg = f"Invalid configuration in {config_path}:\n{e!s}"
        raise click.ClickException(msg) from e
    config.configure_logging()
    return config


def _print_user(user: AppUser | None) -> None:
    if not user:
        raise click.ClickException("User not found")
    click.echo(user.model_dump_json(indent=2))


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(message="%(version)s")
def main() -> None:
    """Administrative command-line interface for ldapstore."""


@main.command()
@click.argument("topic", default=None, required=False, nargs=1)
@click.pass_context
def help(ctx: click.Context, topic: str | None) -> None:
    """Show help for any command."""
    display_help(main, ctx, topic)


@main.command("check-config")
@_config_path_option
def check_config(*, config_path: Path) -> None:
    """Validate the configuration and list the configured directories."""
    config = _load_config(config_path)
    for connection in config.connections:
        pattern = connection.pre_filter_regex or "(all usernames)"
        name = connection.friendly_name
        click.echo(f"{name}: {connection.ldap_url} {pattern}")


@main.command()
@click.argument("username")
@click.option(
    "--password",
    envvar="LDAPSTORE_PASSWORD",
    prompt=True,
    hide_input=True,
    help="Password to check.",
)
@click.option(
    "--domain", default=None, help="Friendly name of directory to use."
)
@_config_path_option
@run_with_asyncio
async def validate(
    username: str, *, password: str, domain: str | None, config_path: Path
) -> None:
    """Check a username and password and show the resulting user."""
    config = _load_config(config_path)
    logger = structlog.get_logger("ldapstore")
    logger.debug("Validating credentials", user=username, domain=domain)
    async with Factory.standalone(config) as factory:
        user_store = factory.create_user_store_service()
        user = await user_store.validate_credentials(
            username, password, domain
        )
    _print_user(user)


@main.command()
@click.argument("username")
@click.option(
    "--subject-id",
    is_flag=True,
    default=False,
    help="Treat the argument as a subject ID rather than a username.",
)
@_config_path_option
@run_with_asyncio
async def find(username: str, *, subject_id: bool, config_path: Path) -> None:
    """Look up a user without checking any password."""
    config = _load_config(config_path)
    async with Factory.standalone(config) as factory:
        user_store = factory.create_user_store_service()
        if subject_id:
            user = await user_store.find_by_subject_id(username)
        else:
            user = await user_store.find_by_username(username)
    _print_user(user)
