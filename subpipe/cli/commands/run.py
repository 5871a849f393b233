"""Run command implementation."""

import logging
import sys
from argparse import Namespace
from pathlib import Path
from typing import Dict

from subpipe.exceptions import ScriptValidationError, SubpipeError
from subpipe.loader import ScriptLoader
from subpipe.variables import Environment


logger = logging.getLogger(__name__)


def parse_vars(args: Namespace) -> Dict[str, str]:
    """Parse KEY=VALUE variables from command line arguments."""
    variables = {}
    for item in args.var or []:
        if '=' not in item:
            raise ValueError(f"Invalid variable format: {item}. Expected KEY=VALUE")
        key, value = item.split('=', 1)
        if not key:
            raise ValueError(f"Invalid variable format: {item}. Empty variable name")
        variables[key] = value
    return variables


def exit_code_for(status: int) -> int:
    """Map a pipeline status onto a process exit code."""
    code = status & 0xFF
    if status != 0 and code == 0:
        return 1
    return code


def print_variables(env: Environment, names) -> None:
    for name in names or []:
        if name in env:
            print(f"{name}={env.lookup(name)}")
        else:
            print(f"Variable not set: {name}", file=sys.stderr)


def run_script_command(args: Namespace) -> int:
    """Load a pipeline script and run it against a copy of the process environment."""
    log_level = getattr(logging, args.log_level.upper())
    if args.debug:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.ERROR

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        script_path = Path(args.script).resolve()
        if not script_path.exists():
            logger.error(f"Script file not found: {script_path}")
            return 1

        logger.info(f"Loading script: {script_path}")
        try:
            script = ScriptLoader().load(script_path)
        except ScriptValidationError as e:
            for error in e.errors:
                logger.error(f"Validation error: {error.message} ({error.path})" if error.path
                             else f"Validation error: {error.message}")
            return e.exit_code

        variables = parse_vars(args)

        if args.dry_run:
            logger.info(f"[DRY RUN] Script validation successful: {len(script.steps)} step(s)")
            return 0

        env = Environment(Environment.snapshot())
        for key, value in variables.items():
            env.set(key, value, exportable=True)

        status = script.run(env)
        logger.info(f"Script finished with status {status}")

        print_variables(env, args.print_var)
        return exit_code_for(status)

    except SubpipeError as e:
        # Raised before anything was committed: nothing ran past this point.
        logger.error(f"Pipeline error: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        return 2
