"""Config command implementation.

Manages the imapattach configuration file.
"""

from pathlib import Path

import typer
from typing_extensions import Annotated

from imapattach.config import (
    CONFIG_FILE,
    init_config,
    load_config,
    resolve_config_file,
    set_config_value,
)
from imapattach.errors import ConfigError

app = typer.Typer(help="Manage configuration")


@app.command()
def init(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite existing config")
    ] = False,
):
    """Create a template config file."""
    created = init_config(overwrite=force)

    if created:
        typer.echo(f"Created config file: {CONFIG_FILE}")
        typer.echo()
        typer.echo("Edit the config file to add your server and download settings.")
    else:
        typer.echo(f"Config already exists at {CONFIG_FILE}")
        typer.echo("Use --force to overwrite.")


@app.command()
def path(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file to use")
    ] = None,
):
    """Show which config file would be used."""
    config_file = resolve_config_file(config)
    if config_file is None:
        typer.echo("No config file found.", err=True)
        raise typer.Exit(1)
    typer.echo(str(config_file))


@app.command()
def show(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file to use")
    ] = None,
):
    """Display current configuration.

    The password is redacted in output.
    """
    try:
        loaded = load_config(config)
    except ConfigError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)

    for key, value in loaded.items():
        if not isinstance(value, dict):
            typer.echo(f"{key} = {value}")
    typer.echo()

    for section, values in loaded.items():
        if isinstance(values, dict):
            _display_section(section, values)


def _display_section(name: str, values: dict) -> None:
    """Display a single config section with the password redacted."""
    typer.echo(f"[{name}]")
    for key, value in values.items():
        if key == "password":
            # Redact but indicate whether it's set
            display_value = "***REDACTED***" if value else "(not set)"
        else:
            display_value = value
        typer.echo(f"  {key} = {display_value}")
    typer.echo()


@app.command("set")
def set_value(
    key: Annotated[
        str,
        typer.Argument(help="Configuration key (dot notation, e.g., 'download.page_size')"),
    ],
    value: Annotated[str, typer.Argument(help="Configuration value")],
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file to update")
    ] = None,
):
    """Set a configuration value using dot notation.

    Writes to the config file that download would read unless --config
    is given.

    Examples:
        imapattach config set download.page_size 200
        imapattach config set connect.host imap.fastmail.com
    """
    try:
        set_config_value(key, value, path=config)
    except (ValueError, ConfigError) as e:
        typer.echo(f"Invalid value: {e}", err=True)
        raise typer.Exit(1)
    except OSError as e:
        typer.echo(f"Failed to write config: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Set {key} = {value}")
