import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.logging.logger import Log
from app.pipeline.models import CandidateFile, OutcomeStatus, Session, SubmissionOutcome
from app.pipeline.orchestrator import UploadOrchestrator, build_orchestrator


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Verify the holder's age on an identity document and upload it."
    )
    parser.add_argument("document", type=Path, help="PNG or JPEG image of the document")
    parser.add_argument("--user-id", required=True, help="Authenticated user identifier")
    parser.add_argument(
        "--media-type",
        default=None,
        help="Declared media type (guessed from the file name when omitted)",
    )
    return parser.parse_args(argv)


def read_candidate(path: Path, media_type: str | None) -> CandidateFile:
    declared = media_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return CandidateFile(payload=path.read_bytes(), media_type=declared, file_name=path.name)


async def run_submission(
    orchestrator: UploadOrchestrator,
    candidate: CandidateFile,
    session: Session,
) -> SubmissionOutcome:
    """Submit the document and log progress until the run finishes."""
    run = orchestrator.start(candidate, session)
    async for percent in run.progress:
        Log.info("Upload progress", percent=percent)
    return await run.outcome()


def main(argv: list[str] | None = None) -> int:
    """Entry point: settings -> pool -> orchestrator -> one submission."""
    args = parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        orchestrator = build_orchestrator(settings)
        candidate = read_candidate(args.document, args.media_type)
        outcome = asyncio.run(
            run_submission(orchestrator, candidate, Session(user_id=args.user_id))
        )
    finally:
        close_pool()

    if outcome.status is OutcomeStatus.COMPLETED:
        Log.info("Document verified", reference_url=outcome.storage_reference_url)
        return 0
    kind = outcome.error_kind.value if outcome.error_kind else "Unknown"
    Log.error(
        f"Submission not verified: {outcome.message}",
        status=outcome.status.value,
        kind=kind,
    )
    return 1


if __name__ == "__main__":
    sys.exit(main())
