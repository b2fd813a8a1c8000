"""
Bulk import of Congress.gov legislative data.

Usage:
    python -m scripts.bulk_import              # start or resume
    python -m scripts.bulk_import --dry-run    # capped run, nothing written
    python -m scripts.bulk_import --status     # show checkpoint progress
    python -m scripts.bulk_import --reset      # delete the checkpoint
    python -m scripts.bulk_import --phase bills

Phases (in order): legislators, committees, bills, votes, validate
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
import os
from typing import List, Optional

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import get_config_summary, settings, validate_environment
from core.database import build_session_factory
from core.exceptions import ETLException
from core.logging import setup_logging
from ingestion.checkpoint import CheckpointManager
from ingestion.error_budget import ErrorBudget
from ingestion.extractors.congress_client import CongressApiClient
from ingestion.importers.base import ImportContext
from ingestion.loaders.memory_loader import InMemoryLegislativeRepository
from ingestion.loaders.postgres_loader import PostgresLegislativeRepository
from ingestion.orchestrator import PhaseOrchestrator
from ingestion.phases import PHASE_ORDER, ImportPhase, get_all_dependencies

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bulk_import",
        description="Resumable bulk import of Congress.gov legislative data",
    )
    parser.add_argument(
        "-d", "--dry-run",
        action="store_true",
        help=f"Fetch and transform up to {settings.DRY_RUN_MAX_RECORDS} records per phase "
             "without writing to the database or the checkpoint",
    )
    parser.add_argument(
        "-r", "--resume",
        action="store_true",
        help="Resume from the last checkpoint (default behavior)",
    )
    parser.add_argument(
        "-s", "--status",
        action="store_true",
        help="Show current import status and exit",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the checkpoint and exit",
    )
    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Discard the checkpoint and start a fresh import",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-p", "--phase",
        choices=[p.value for p in PHASE_ORDER],
        help="Run a single phase only",
    )
    return parser


def show_status(checkpoints: CheckpointManager) -> None:
    state = checkpoints.get_state() or checkpoints.load()

    print("\n=== Import Status ===\n")
    if state is None:
        print("No import in progress.")
        print("\nRun `python -m scripts.bulk_import` to start a new import.")
        return

    summary = checkpoints.get_progress_summary()
    print(f"Run ID:        {summary['run_id']}")
    print(f"Current Phase: {summary['phase']}")
    print(f"Progress:      {summary['progress']}%")
    print(f"Elapsed:       {summary['elapsed']}")
    print(f"Phases:        {summary['completed_phases']}/{summary['total_phases']} complete")
    print("")

    print("Phase Status:")
    for phase in PHASE_ORDER:
        complete = phase in state.completed_phases
        current = state.phase == phase and not complete
        marker = "✓" if complete else "→" if current else " "
        label = "COMPLETE" if complete else "IN PROGRESS" if current else "PENDING"
        print(f"  {marker} {phase.value:<12} {label}")

    if state.records_processed > 0:
        print("")
        print("Current Phase Details:")
        print(f"  Records: {state.records_processed}/{state.total_expected or '?'}")
        if state.congress:
            print(f"  Congress: {state.congress}")
        if state.bill_type:
            print(f"  Bill Type: {state.bill_type}")
        if state.offset > 0:
            print(f"  Offset: {state.offset}")

    if state.last_error:
        print("")
        print(f"Last Error: {state.last_error}")
    print("")


def prepare_checkpoint(args: argparse.Namespace) -> CheckpointManager:
    """Load, create or replace the checkpoint according to the flags."""
    if args.dry_run:
        checkpoints = CheckpointManager(settings.CHECKPOINT_DIR, persist=False)
        checkpoints.create()
        if args.phase:
            # A fresh in-memory run has nothing completed yet
            for dependency in get_all_dependencies(ImportPhase(args.phase)):
                checkpoints.update(complete_phase=dependency)
        return checkpoints

    checkpoints = CheckpointManager(settings.CHECKPOINT_DIR)
    if args.force:
        checkpoints.reset()
        checkpoints.create()
        logger.info("Starting fresh import (--force)")
        return checkpoints

    state = checkpoints.load_or_create()
    if state.completed_phases:
        logger.info(f"Resuming import (run: {state.run_id})")
        logger.info(f"Completed phases: {', '.join(p.value for p in state.completed_phases)}")
    else:
        logger.info(f"Starting new import (run: {state.run_id})")
    return checkpoints


async def execute(
    args: argparse.Namespace,
    checkpoints: CheckpointManager,
    client: Optional[CongressApiClient] = None,
) -> None:
    """Build the repository and run the requested phases."""
    budget = ErrorBudget()
    client = client or CongressApiClient()

    async with client:
        if args.dry_run:
            context = ImportContext(
                client=client,
                repository=InMemoryLegislativeRepository(),
                checkpoints=checkpoints,
                budget=budget,
                dry_run=True,
                verbose=args.verbose,
            )
            await _run_phases(args, context)
            return

        engine, session_factory = build_session_factory()
        try:
            async with session_factory() as session:
                context = ImportContext(
                    client=client,
                    repository=PostgresLegislativeRepository(session),
                    checkpoints=checkpoints,
                    budget=budget,
                    verbose=args.verbose,
                )
                await _run_phases(args, context)
        finally:
            await engine.dispose()


async def _run_phases(args: argparse.Namespace, context: ImportContext) -> None:
    orchestrator = PhaseOrchestrator(context)
    if args.phase:
        await orchestrator.run_phase(ImportPhase(args.phase))
    else:
        await orchestrator.run_all()


def install_signal_handlers(checkpoints: CheckpointManager, task: asyncio.Task) -> None:
    """SIGINT/SIGTERM save the checkpoint and cancel the import task."""
    loop = asyncio.get_running_loop()

    def handle(sig: signal.Signals):
        logger.warning(f"Received {sig.name}. Saving checkpoint and exiting...")
        checkpoints.flush()
        task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle, sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")


async def run_import(args: argparse.Namespace, checkpoints: CheckpointManager) -> int:
    install_signal_handlers(checkpoints, asyncio.current_task())
    try:
        await execute(args, checkpoints)
    except asyncio.CancelledError:
        checkpoints.flush()
        logger.warning("Import interrupted; run again to resume")
        return EXIT_INTERRUPTED
    except ETLException as e:
        logger.error(f"Import failed: {e}")
        return EXIT_FAILURE
    except Exception as e:
        logger.exception(f"Import failed with unexpected error: {e}")
        return EXIT_FAILURE
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose)

    if args.status:
        show_status(CheckpointManager(settings.CHECKPOINT_DIR))
        return EXIT_OK

    if args.reset:
        CheckpointManager(settings.CHECKPOINT_DIR).reset()
        print("Checkpoint reset. Run `python -m scripts.bulk_import` to start a new import.")
        return EXIT_OK

    problems = validate_environment(settings)
    if problems:
        logger.error("Environment validation failed:")
        for problem in problems:
            logger.error(f"  - {problem}")
        return EXIT_FAILURE

    checkpoints = prepare_checkpoint(args)

    if args.verbose:
        logger.info(f"Configuration:\n{json.dumps(get_config_summary(settings), indent=2)}")
    if args.dry_run:
        logger.warning("DRY RUN MODE - no database or checkpoint changes will be made")

    exit_code = asyncio.run(run_import(args, checkpoints))
    show_status(checkpoints)
    if exit_code == EXIT_OK:
        logger.info("Import completed successfully")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
