"""Main CLI entry point for imapattach."""

import typer

from imapattach import __version__
from imapattach.cli import commands

app = typer.Typer(
    name="imapattach",
    help="Download email attachments matching a pattern from an IMAP mailbox",
    no_args_is_help=True,
)

# Register command groups
app.add_typer(commands.download.app, name="download")
app.add_typer(commands.config.app, name="config")


@app.command()
def version():
    """Show version information."""
    typer.echo(f"imapattach version {__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
