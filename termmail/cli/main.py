"""CLI entry point for termmail."""

import dataclasses
import logging
from pathlib import Path

import click
from dotenv import load_dotenv
from textual.logging import TextualHandler

from termmail.config import ImapSettings

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"


def _configure_logging(subcommand: str | None, log_file: Path | None, verbose: bool) -> None:
    """Route log records somewhere that won't corrupt the terminal UI.

    The headless ``ls`` command logs to stderr; the TUI logs to ``log_file``
    when given, otherwise to textual's own log channel.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        level = logging.DEBUG if verbose else logging.INFO
    elif subcommand == "ls":
        handler = logging.StreamHandler()
    else:
        handler = TextualHandler()
    logging.basicConfig(level=level, format=_LOG_FORMAT, handlers=[handler], force=True)


@click.group(invoke_without_command=True)
@click.option("--mailbox", default=None, help="Mailbox to open (default: $IMAP_MAILBOX or INBOX).")
@click.option(
    "--page-size",
    type=click.IntRange(min=1),
    default=None,
    help="Messages fetched per page (default: $TERMMAIL_PAGE_SIZE or 25).",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Append log records to this file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug detail.")
@click.pass_context
def cli(
    ctx: click.Context,
    mailbox: str | None,
    page_size: int | None,
    log_file: Path | None,
    verbose: bool,
) -> None:
    """Terminal mail reader — browse an IMAP mailbox page by page."""
    load_dotenv()
    _configure_logging(ctx.invoked_subcommand, log_file, verbose)

    try:
        settings = ImapSettings.from_env()
        overrides: dict[str, object] = {}
        if mailbox:
            overrides["mailbox"] = mailbox
        if page_size is not None:
            overrides["page_size"] = page_size
        if overrides:
            settings = dataclasses.replace(settings, **overrides)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    ctx.obj = settings
    if ctx.invoked_subcommand is None:
        ctx.invoke(browse)


# Import and register commands after cli is defined to avoid circular imports.
from termmail.cli.commands import browse, list_messages  # noqa: E402

cli.add_command(browse)
cli.add_command(list_messages)
