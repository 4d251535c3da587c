"""Download command implementation."""

import logging
from pathlib import Path

import typer
from typing_extensions import Annotated

from imapattach.config import build_settings, load_config
from imapattach.download import AttachmentSaver, DownloadEngine, MessageDecoder
from imapattach.errors import ConfigError, ImapAttachError
from imapattach.imap import ImapSession

app = typer.Typer(help="Download matching attachments from a mailbox")

logger = logging.getLogger("imapattach")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


@app.callback(invoke_without_command=True)
def download(
    ctx: typer.Context,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file to use")
    ] = None,
    mailbox: Annotated[
        str | None, typer.Option(help="Mailbox to walk (overrides config)")
    ] = None,
    debug: Annotated[
        bool, typer.Option("--debug", help="Log message headers and IMAP traffic")
    ] = False,
):
    """Download attachments matching the configured pattern."""
    try:
        settings = build_settings(load_config(config))
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)

    logging.basicConfig(
        level=logging.DEBUG if debug or settings.debug else logging.INFO,
        format=LOG_FORMAT,
    )

    directory = settings.attachments_directory
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        typer.echo(
            f"Configuration error: failed to create attachments directory "
            f"{directory}: {e}",
            err=True,
        )
        raise typer.Exit(1)

    logger.info("Attachments directory %s", directory)

    saver = AttachmentSaver(directory, settings.pattern)
    decoder = MessageDecoder(saver)

    try:
        with ImapSession(
            settings.host,
            settings.port,
            settings.username,
            settings.password,
            ssl=settings.ssl,
        ) as session:
            engine = DownloadEngine(session, decoder, settings.page_size)
            result = engine.run(mailbox or settings.mailbox)
    except ImapAttachError as e:
        typer.echo(f"Failed to download attachments: {e}", err=True)
        raise typer.Exit(1)

    logger.info("Finished processing emails. Attachments are in %s", directory)
    typer.echo(
        f"{result.saved} attachments saved, {result.skipped} skipped "
        f"from {result.messages} messages"
    )
