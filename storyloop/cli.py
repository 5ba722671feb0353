#!/usr/bin/env python3
"""storyloop CLI entrypoint."""

import sys
import argparse
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from storyloop.commands.run import cmd_run
from storyloop.lib.config import load_run_config, parse_positive_int
from storyloop.lib.constants import DEFAULT_MAX_ITERATIONS, RESUME_HINT
from storyloop.lib.output import ConsoleLog

logger = logging.getLogger(__name__)

DESCRIPTION = """\
Automates the BMAD implementation phase by orchestrating Claude Code
sessions to implement the stories of your epics."""

EPILOG = f"""\
workflow:
  1. SM agent checks sprint status (skipped when there is work to resume)
  2. you select an epic to implement
  3. for each story in the epic:
     a. create the story file (if needed)
     b. dev agent implements the story
     c. review agent verifies completion
     d. repeat dev-review until done (max {DEFAULT_MAX_ITERATIONS} iterations by default)
     e. commit changes
  4. mark the epic done and offer the next epic with ongoing work

requirements:
  - run from a BMAD project directory (_bmad/ folder present)
  - Claude Code CLI installed (claude command available)
  - git repository (optional, for commits)

examples:
  storyloop              start fresh or prompt to resume
  storyloop --resume     auto-resume from the last session
  storyloop -v           verbose output for debugging
  storyloop -m 5         limit to 5 dev-review cycles per story
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='storyloop',
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--resume', '-r', action='store_true',
                        help='Auto-resume from saved state without prompting')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose/debug output')
    parser.add_argument('--max-iterations', '-m', metavar='N', nargs='?', const='',
                        help=f'Max dev-review cycles per story (default: {DEFAULT_MAX_ITERATIONS})')
    parser.add_argument('--yolo', '-y', action='store_true',
                        help='Auto-continue, auto-commit, and auto-complete stories at max iterations')
    return parser


def setup_logging(verbose: bool, console: Console) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose, markup=False)],
        force=True,
    )


def main(argv: list[str] | None = None) -> int:
    args, unknown = build_parser().parse_known_args(argv)

    out = ConsoleLog(verbose=args.verbose)
    setup_logging(args.verbose, out.console)

    if unknown:
        out.warn(f"Ignoring unrecognized arguments: {' '.join(unknown)}")

    max_iterations = None
    if args.max_iterations is not None:
        max_iterations = parse_positive_int(args.max_iterations)
        if max_iterations is None:
            out.warn(f"Ignoring invalid --max-iterations value '{args.max_iterations}'")

    config = load_run_config(
        Path.cwd(),
        resume=args.resume,
        verbose=args.verbose,
        yolo=args.yolo,
        max_iterations=max_iterations,
    )
    logger.debug(f"Run config: {config}")

    try:
        return cmd_run(config, out)
    except KeyboardInterrupt:
        out.console.print()
        out.warn("Interrupted")
        out.info(RESUME_HINT)
        return 130


if __name__ == '__main__':
    sys.exit(main())
