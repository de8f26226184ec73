"""
Command-line interface for depbump.

This module provides the main CLI entry point and handles global options,
configuration loading, and command registration.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from depbump.config import load_config
from depbump.__version__ import __version__
from depbump.context import DepBumpContext
from depbump.exceptions import ConfigError, DepBumpError
from depbump.utils.logger import get_logger, setup_logging
from depbump.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="DEPBUMP_CONFIG",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="DEPBUMP_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="depbump",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """depbump: upgrade version constraints in Poetry projects.

    \b
    Available commands:
      depbump upgrade              Upgrade constraints in pyproject.toml

    \b
    Examples:
      depbump upgrade
      depbump upgrade --major --dry-run
      depbump -v upgrade --only requests,rich

    Use ``depbump COMMAND --help`` for command-specific options.
    """
    # Respect NO_COLOR before logging and the console are set up
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()
    _configure_logging(verbose)

    try:
        loaded_config = load_config(config)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    depbump_ctx = DepBumpContext()
    depbump_ctx.config_path = config or loaded_config.source_path
    depbump_ctx.color = color
    depbump_ctx.verbose = verbose
    depbump_ctx.config = loaded_config
    ctx.obj = depbump_ctx

    logger.debug("depbump v%s", __version__)
    logger.debug("Config path: %s", depbump_ctx.config_path)
    if loaded_config.source_path:
        logger.debug("Loaded configuration: %s", loaded_config.to_log_dict())
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags."""
    if verbose <= 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    setup_logging(level=level, verbose=verbose > 1)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


# Register CLI subcommands
from depbump.commands.upgrade import upgrade  # noqa: E402

cli.add_command(upgrade)


def main() -> int:
    """Main entry point for the depbump CLI.

    Returns:
        Exit code:
            0   Success
            1   Rejected upgrade, application error or unhandled error
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return 0

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except click.Abort:
        print_warning("\nOperation cancelled by user")
        return 130

    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1

    except DepBumpError as exc:
        print_error(str(exc))
        logger.debug(
            "DepBumpError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
