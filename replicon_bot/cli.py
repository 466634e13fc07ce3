"""
Command-line interface for the Replicon timesheet automation tool.

This module provides the CLI using argparse: static validation, dry
runs, browser runs and checkpoint management.
"""

import argparse
import os
import sys
from typing import List, Optional

from .checkpoints import CheckpointNotFoundError, CheckpointStore
from .config import Config
from .dry_run import dry_run
from .inputs import InputLoadError, load_mappings, load_rows, load_time_slots
from .logging_utils import (
    get_logger,
    log_error,
    log_section,
    log_success,
    log_warning,
    setup_logging,
)
from .models import Credentials, MessageType, ValidationResult, WorkerMessage
from .network_utils import login_page_problem
from .retry import CircuitOpenError
from .validation import validate_automation_data
from .worker import AutomationAlreadyRunningError, AutomationController


DEFAULT_CHECKPOINT_DIR = '.replicon_checkpoints'


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='replicon_bot',
        description='Automated timesheet filling for Replicon',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check inputs without opening a browser
  python -m replicon_bot validate --rows data/march.csv --mappings data/mappings.json

  # Preview the entries a run would write
  python -m replicon_bot dry-run --rows data/march.csv --mappings data/mappings.json

  # Fill the timesheet (credentials from REPLICON_EMAIL / REPLICON_PASSWORD)
  python -m replicon_bot run --rows data/march.csv --mappings data/mappings.json

  # Resume an interrupted run
  python -m replicon_bot run --mappings data/mappings.json --resume run-20250301-0900-ab12cd

  # List and clear checkpoints
  python -m replicon_bot checkpoints list
  python -m replicon_bot checkpoints clear run-20250301-0900-ab12cd
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Enable verbose logging (debug level)'
    )

    inputs = argparse.ArgumentParser(add_help=False)
    inputs.add_argument(
        '--rows',
        type=str,
        metavar='PATH',
        help='CSV file with one row per calendar day'
    )
    inputs.add_argument(
        '--mappings',
        type=str,
        required=True,
        metavar='PATH',
        help='JSON file with account/project mappings'
    )
    inputs.add_argument(
        '--slots',
        type=str,
        metavar='PATH',
        help='JSON file with work-day time slots (defaults if omitted)'
    )

    storage = argparse.ArgumentParser(add_help=False)
    storage.add_argument(
        '--checkpoint-dir',
        type=str,
        default=DEFAULT_CHECKPOINT_DIR,
        metavar='DIR',
        help=f'Directory for run checkpoints (default: {DEFAULT_CHECKPOINT_DIR})'
    )

    subparsers.add_parser(
        'validate',
        parents=[common, inputs],
        help='Validate rows, mappings and time slots'
    )

    subparsers.add_parser(
        'dry-run',
        parents=[common, inputs],
        help='Show the entries a run would write, without a browser'
    )

    run_parser = subparsers.add_parser(
        'run',
        parents=[common, inputs, storage],
        help='Fill the timesheet in the browser'
    )
    run_parser.add_argument(
        '--email',
        type=str,
        default=os.environ.get('REPLICON_EMAIL'),
        help='SSO email (default: $REPLICON_EMAIL)'
    )
    run_parser.add_argument(
        '--password',
        type=str,
        default=os.environ.get('REPLICON_PASSWORD'),
        help='SSO password (default: $REPLICON_PASSWORD)'
    )
    run_parser.add_argument(
        '--headless',
        action='store_true',
        help='Run browser in headless mode (no GUI)'
    )
    run_parser.add_argument(
        '--login-url',
        type=str,
        default=Config.login_url,
        metavar='URL',
        help=f'SSO login page (default: {Config.login_url})'
    )
    run_parser.add_argument(
        '--resume',
        type=str,
        metavar='ID',
        help='Resume the checkpointed run with this id'
    )
    run_parser.add_argument(
        '--skip-validation',
        action='store_true',
        help='Run even if validation reports row or extras errors'
    )
    run_parser.add_argument(
        '--skip-network-check',
        action='store_true',
        help='Do not check that the login page is reachable first'
    )

    checkpoints_parser = subparsers.add_parser(
        'checkpoints',
        parents=[common, storage],
        help='List or clear run checkpoints'
    )
    checkpoint_actions = checkpoints_parser.add_subparsers(dest='action')
    checkpoint_actions.add_parser('list', help='List checkpoints that can be resumed')
    clear_parser = checkpoint_actions.add_parser('clear', help='Delete a checkpoint')
    clear_parser.add_argument('checkpoint_id', metavar='ID', help='Checkpoint id')

    return parser


def report_validation(result: ValidationResult, logger) -> None:
    """Log a validation result."""
    for error in result.errors:
        log_error(error, logger)
    for warning in result.warnings:
        log_warning(warning, logger)
    for suggestion in result.suggestions:
        logger.info(f"  Suggestion: {suggestion}")

    if result.is_valid:
        log_success(
            f"Validation passed ({len(result.warnings)} warning(s))",
            logger
        )
    else:
        log_error(f"Validation failed with {len(result.errors)} error(s)", logger)


def _load_inputs(args: argparse.Namespace, require_rows: bool = True):
    if require_rows and not args.rows:
        raise InputLoadError("--rows is required")
    rows = load_rows(args.rows) if args.rows else []
    mappings = load_mappings(args.mappings)
    time_slots = load_time_slots(args.slots)
    return rows, mappings, time_slots


def cmd_validate(args: argparse.Namespace) -> int:
    """
    Execute the validate command.

    Returns:
        Exit code (0 when valid)
    """
    logger = get_logger()

    try:
        rows, mappings, time_slots = _load_inputs(args)
    except InputLoadError as e:
        log_error(f"Input loading failed: {e}", logger)
        return 1

    log_section("Validating Inputs", logger)
    logger.info(f"Loaded {len(rows)} row(s), {len(mappings)} account(s), {len(time_slots)} slot(s)")

    result = validate_automation_data(rows, mappings, time_slots)
    report_validation(result, logger)
    return 0 if result.is_valid else 1


def cmd_dry_run(args: argparse.Namespace) -> int:
    """
    Execute the dry-run command.

    Returns:
        Exit code (0 when no errors were found)
    """
    logger = get_logger()

    try:
        rows, mappings, time_slots = _load_inputs(args)
    except InputLoadError as e:
        log_error(f"Input loading failed: {e}", logger)
        return 1

    result = dry_run(rows, mappings, time_slots)
    logger.info(result.format_summary())

    logger.info("No browser operations performed.")
    logger.info("Use the 'run' command to fill the timesheet.")
    return 0 if result.success else 1


def _message_printer(logger):
    def on_message(message: WorkerMessage):
        # Log lines are already written by the runner's logger
        if message.type == MessageType.PROGRESS:
            data = message.data
            logger.debug(
                f"[{data.get('status')}] day {data.get('currentDay')}/{data.get('totalDays')} "
                f"entry {data.get('currentEntry')}/{data.get('totalEntries')}: "
                f"{data.get('message')}"
            )
        elif message.type == MessageType.READY:
            logger.debug("Automation worker ready")
    return on_message


def cmd_run(args: argparse.Namespace) -> int:
    """
    Execute the run command.

    Returns:
        Exit code (0 for success, 1 for failure, 130 when interrupted)
    """
    logger = get_logger()

    if not args.email or not args.password:
        log_error("Credentials required: use --email/--password or REPLICON_EMAIL/REPLICON_PASSWORD", logger)
        return 1

    config = Config(
        login_url=args.login_url,
        headless=args.headless,
        checkpoint_dir=args.checkpoint_dir,
        verbose=args.verbose,
    )

    try:
        config.validate()
    except ValueError as e:
        log_error(f"Configuration error: {e}", logger)
        return 1

    checkpoints = CheckpointStore(config.checkpoint_dir)

    try:
        rows, mappings, time_slots = _load_inputs(args, require_rows=not args.resume)
        if args.resume:
            rows = checkpoints.get(args.resume).rows()
    except InputLoadError as e:
        log_error(f"Input loading failed: {e}", logger)
        return 1
    except CheckpointNotFoundError:
        log_error(f"No checkpoint with id {args.resume}", logger)
        return 1

    log_section("Validating Inputs", logger)
    # Slot text goes to the browser as written, so only row errors block
    result = validate_automation_data(rows, mappings, time_slots, check_slot_format=False)
    report_validation(result, logger)
    if not result.is_valid and not args.skip_validation:
        logger.info("Fix the errors above or pass --skip-validation to run anyway.")
        return 1

    if not args.skip_network_check:
        log_section("Checking Network", logger)
        problem = login_page_problem(config.login_url)
        if problem:
            log_error(problem, logger)
            return 1
        log_success("Login page reachable", logger)

    credentials = Credentials(email=args.email, password=args.password)
    controller = AutomationController(config, checkpoints)
    on_message = _message_printer(logger)

    log_section("Starting Automation", logger)
    try:
        if args.resume:
            controller.resume(args.resume, credentials, time_slots, mappings)
            outcome = controller.wait(on_message=on_message)
        else:
            outcome = controller.run_with_retry(
                credentials, rows, time_slots, mappings, on_message=on_message
            )

    except KeyboardInterrupt:
        logger.info("")
        log_warning("Stopping after the current day...", logger)
        controller.stop()
        try:
            outcome = controller.wait(on_message=on_message)
            logger.info(f"Checkpoint kept; resume with --resume {outcome.run_id}")
        except KeyboardInterrupt:
            pass
        controller.close()
        return 130

    except (AutomationAlreadyRunningError, CircuitOpenError) as e:
        log_error(str(e), logger)
        controller.close()
        return 1

    controller.close()

    if outcome.success:
        log_success(f"Done: {outcome.entries_written} entries written", logger)
        return 0
    if outcome.stopped:
        log_warning(f"Stopped; resume with --resume {outcome.run_id}", logger)
        return 1

    log_error(f"Automation failed: {outcome.error}", logger)
    logger.info(f"Resume with --resume {outcome.run_id}")
    return 1


def cmd_checkpoints(args: argparse.Namespace) -> int:
    """
    Execute the checkpoints command.

    Returns:
        Exit code
    """
    logger = get_logger()
    store = CheckpointStore(args.checkpoint_dir)

    if args.action == 'clear':
        try:
            store.get(args.checkpoint_id)
        except CheckpointNotFoundError:
            log_error(f"No checkpoint with id {args.checkpoint_id}", logger)
            return 1
        store.clear(args.checkpoint_id)
        log_success(f"Checkpoint {args.checkpoint_id} cleared", logger)
        return 0

    pending = store.list_pending()
    if not pending:
        logger.info("No checkpoints to resume.")
        return 0

    log_section("Checkpoints", logger)
    for checkpoint in pending:
        last_day = checkpoint.last_successful_day or 0
        line = (
            f"  {checkpoint.id}  {checkpoint.status.value:<11}  "
            f"day {last_day}/{checkpoint.total_days}"
        )
        if checkpoint.error_message:
            line += f"  ({checkpoint.error_message})"
        logger.info(line)
    return 0


COMMANDS = {
    'validate': cmd_validate,
    'dry-run': cmd_dry_run,
    'run': cmd_run,
    'checkpoints': cmd_checkpoints,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=getattr(args, 'verbose', False))

    logger = get_logger()

    logger.info("")
    logger.info("=" * 70)
    logger.info("  Replicon Timesheet Automation")
    logger.info("=" * 70)

    if not args.command:
        parser.print_help()
        return 1

    return COMMANDS[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
