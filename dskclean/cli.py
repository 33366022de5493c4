#!/usr/bin/env python3
"""
Docker disk clean command line interface.

Removes exited containers and dangling images, and in deep-clean mode every
unused image and dangling volume, logging every step to a run log.
"""

import argparse
import getpass
import logging
import socket
import sys
from pathlib import Path
from typing import List, Optional

from dskclean.conf import DEFAULT_LOG_FILE, CleanMode, RunConfig
from dskclean.controller import RunController
from dskclean.errors import FatalError
from dskclean.log import prepare_log
from dskclean.timedate import utc_stamp

logger = logging.getLogger(__name__)

DESCRIPTION = """
In its most simple form, this tool cleans up exited containers and images that
have no tag and no relationship to any tagged image (dangling). Deep clean
extends the cleaning to every image no remaining container uses and to
dangling volumes.
"""

EPILOG = """
Exit codes:
  0  success, including nothing to clean
  1  runtime unreachable, unsupported API level with --require-volumes,
     unknown option or --help
"""


class CleanupArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


class UsageAndExit(argparse.Action):
    def __init__(self, option_strings, dest=argparse.SUPPRESS, **kwargs):
        super().__init__(option_strings, dest=dest, nargs=0, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        parser.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = CleanupArgumentParser(
        prog="dskclean",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument(
        "-c",
        "--check-only",
        action="store_true",
        help="Dry run: list every resource that would be deleted without deleting it",
    )
    parser.add_argument(
        "-D",
        "--deep-clean",
        action="store_true",
        help="Remove all exited containers, all unused images and dangling volumes. "
        "Use this when you don't care about losing the data stored in them",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Keep the console silent except for the final summary; "
        "everything is still written to the log file",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Echo debug output to the console"
    )
    parser.add_argument(
        "--require-volumes",
        action="store_true",
        help="With -D, abort when the runtime API is too old for volume cleanup "
        "instead of skipping the volume step",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=Path(DEFAULT_LOG_FILE),
        help=f"Run log, recreated on every run (default: ./{DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "-h", "--help", action=UsageAndExit, help="Display this help message and exit"
    )
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        mode=CleanMode.DEEP if args.deep_clean else CleanMode.CONSERVATIVE,
        dry_run=args.check_only,
        quiet=args.quiet,
        verbose=args.verbose,
        require_volume_support=args.require_volumes,
        log_file=args.log_file,
    )


def _whoami() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def main(argv: Optional[List[str]] = None, connect=None) -> int:
    """
    Parse the command line, run one cleanup pass and return the exit code.

    Args:
        argv (Optional[List[str]]): Arguments without the program name. Defaults to sys.argv[1:].
        connect: Accessor factory handed to the RunController.

    Returns:
        int: 0 on success, 1 on a fatal error.
    """
    args = build_parser().parse_args(argv)
    config = config_from_args(args)
    prepare_log(config)
    if config.quiet:
        print(f"Starting dskclean. All output will be stored in {config.log_file}.")
    logger.info(
        f"docker disk clean initiated by {_whoami()} on {socket.gethostname()} "
        f"at {utc_stamp()}"
    )
    try:
        report = RunController(config, connect=connect).run()
    except FatalError as e:
        if config.quiet:
            print(f"dskclean: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.warning("Clean-up interrupted by user")
        return 1
    if config.quiet:
        for line in report.summary_lines():
            print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
