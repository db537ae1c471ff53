"""
QueueAdmin Command-Line Interface

Creates, deletes, recreates or purges queues in batch, or moves a bounded
number of messages between two queues.

Author: QueueAdmin Contributors
Date: 2026-10-19
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import click
import yaml
from pydantic import ValidationError

from queueadmin import __version__
from queueadmin.admin import (
    MoveRequestError,
    QueueAdministrator,
    QueueMover,
    classify_tokens,
    parse_move_request,
    resolve_queue_names,
    select_action,
)
from queueadmin.admin.mover import MOVE_FLAG
from queueadmin.core.config_manager import ConfigManager, QueueAdminConfig
from queueadmin.core.logging_config import clear_run, setup_logging, start_run
from queueadmin.services.queue import QueueService, QueueServiceError, create_queue_service

logger = logging.getLogger("queueadmin.cli")

USAGE_LINES = [
    "--delete <file|queue-name>+",
    "--purge <file|queue-name>+",
    "--recreate <file|queue-name>+",
    "--move <from-queue-name> <to-queue-name> <number-messages-to-move>",
]

CONTEXT_SETTINGS = {
    # Action flags and queue names are passed through untouched
    "ignore_unknown_options": True,
    "help_option_names": ["-h", "--help"],
}


def print_usage() -> None:
    for line in USAGE_LINES:
        click.echo(line)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="queueadmin")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (YAML or JSON)",
)
@click.option(
    "--store",
    type=click.Choice(["memory", "sqlite"], case_sensitive=False),
    help="Queue store to use (default: sqlite)",
)
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the SQLite queue store",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level (default: WARNING)",
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def cli(
    config_file: Optional[Path],
    store: Optional[str],
    db_path: Optional[Path],
    log_level: Optional[str],
    args: Tuple[str, ...],
):
    """
    Administer transactional message queues.

    Every argument that is not a flag is either an existing file, read as one
    queue name per line, or a queue name.

    Options of queueadmin itself (-c, -h, --store, ...) are read wherever they
    appear. Put -- before queue names that look like one of them.

    \b
    Examples:
        queueadmin orders invoices          create queues that are missing
        queueadmin --delete queues.txt      delete every queue listed in a file
        queueadmin --recreate orders        delete and create again
        queueadmin --purge orders           remove all messages
        queueadmin --move 10 orders errors  move up to 10 messages
    """
    if not args:
        print_usage()
        return

    try:
        config = load_config(config_file, store, db_path, log_level)
    except (ValidationError, ValueError, OSError, yaml.YAMLError) as e:
        click.echo(f"Error: invalid configuration: {e}")
        return

    setup_logging(
        level=config.logging.level.value,
        format_type=config.logging.format,
        log_file=config.logging.file,
        rotation_size=config.logging.rotation_size,
        rotation_count=config.logging.rotation_count,
        module_levels=config.logging.module_levels,
    )
    run = start_run()
    logger.debug(f"Run {run}: {len(args)} argument(s)")

    try:
        with create_queue_service(config.service_config()) as service:
            if MOVE_FLAG in args:
                run_move(service, config, args)
            else:
                run_batch(service, config, args)
    except MoveRequestError as e:
        click.echo(f"Error: {e}")
        print_usage()
    except (QueueServiceError, OSError) as e:
        logger.error(f"Run {run} aborted: {e}")
        click.echo(f"Error: {e}")
    finally:
        clear_run()


def load_config(
    config_file: Optional[Path],
    store: Optional[str],
    db_path: Optional[Path],
    log_level: Optional[str],
) -> QueueAdminConfig:
    """Load configuration, applying command-line overrides."""
    overrides = {}
    if store:
        overrides.setdefault("store", {})["type"] = store.lower()
    if db_path:
        overrides.setdefault("store", {})["sqlite_path"] = str(db_path)
    if log_level:
        overrides.setdefault("logging", {})["level"] = log_level.upper()

    return ConfigManager().load(
        config_file=str(config_file) if config_file else None,
        cli_overrides=overrides,
    )


def run_batch(service: QueueService, config: QueueAdminConfig, args: Tuple[str, ...]) -> None:
    tokens = classify_tokens(args)
    names = resolve_queue_names(tokens, config.queues.prefix)
    action = select_action(tokens)
    logger.info(f"Applying {action.value} to {len(names)} queue(s)")

    administrator = QueueAdministrator(
        service,
        service_principal=config.queues.service_principal,
        service_rights=config.queues.service_rights,
        transactional=config.queues.transactional,
    )
    administrator.dispatch(action, names)


def run_move(service: QueueService, config: QueueAdminConfig, args: Tuple[str, ...]) -> None:
    # Move arguments are never read as files
    tokens = classify_tokens(args, is_file=None)
    request = parse_move_request(tokens, config.queues.prefix)
    mover = QueueMover(service, receive_timeout=config.queues.receive_timeout_seconds)
    mover.move(request)


def main(args: Optional[List[str]] = None) -> None:
    """
    Main entry point for the CLI.

    Bad option values and other click usage errors are printed with the usage
    lines like any other error, and the process still exits 0.
    """
    try:
        cli.main(args=args, prog_name="queueadmin", standalone_mode=False)
    except click.ClickException as e:
        click.echo(f"Error: {e.format_message()}")
        print_usage()
    except click.Abort:
        click.echo("Aborted!")


if __name__ == "__main__":
    main()
