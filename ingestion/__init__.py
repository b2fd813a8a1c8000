"""
Bulk import pipeline for Congress.gov legislative data.

Modules:
    phases: Phase enum, run order and dependency graph
    checkpoint: Versioned JSON checkpoint with backup fallback
    rate_limiter: Token bucket admission for API requests
    retry: Exponential backoff with jitter
    pagination: Offset pagination state and lazy page iteration
    error_budget: Run-wide error and time ceilings
    orchestrator: Runs phases in order with dependency checks and timeouts

Subpackages:
    extractors: Congress.gov API client
    transformers: Vocabulary mappers and record normalizer
    loaders: Repository interface with PostgreSQL and in-memory implementations
    importers: One importer per phase (legislators, committees, bills,
        votes, validate)

Architecture:
    Each phase streams records from a paginated list endpoint, normalizes
    them into create schemas and upserts them in batches. Progress is
    checkpointed after the writes it describes, so an interrupted run
    resumes where it stopped.

Usage:
    from ingestion.checkpoint import CheckpointManager
    from ingestion.error_budget import ErrorBudget
    from ingestion.extractors.congress_client import CongressApiClient
    from ingestion.importers.base import ImportContext
    from ingestion.orchestrator import PhaseOrchestrator

Example:
    checkpoints = CheckpointManager(settings.CHECKPOINT_DIR)
    checkpoints.load_or_create()

    async with CongressApiClient() as client:
        context = ImportContext(
            client=client,
            repository=PostgresLegislativeRepository(session),
            checkpoints=checkpoints,
            budget=ErrorBudget(),
        )
        results = await PhaseOrchestrator(context).run_all()

Error Handling:
    All components raise exceptions from core.exceptions. Per-record
    failures are counted against the ErrorBudget; structural failures are
    recorded in the checkpoint and abort the run.
"""

__all__ = [
    "CheckpointManager",
    "CongressApiClient",
    "ErrorBudget",
    "ImportContext",
    "ImportPhase",
    "PhaseOrchestrator",
    "TokenBucketRateLimiter",
]
