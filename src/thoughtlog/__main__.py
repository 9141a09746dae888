"""
Main entrypoint: background retry of pending analyses, plus one-shot commands.

FastAPI runs separately under uvicorn.

Usage:
    python -m thoughtlog                  # starts the pending-queue scheduler
    python -m thoughtlog sweep            # retries pending logs once and exits
    python -m thoughtlog text "..."       # analyses a typed note and stores it
    uvicorn thoughtlog.api.main:app --host 0.0.0.0 --port 8000  # starts API
"""
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


async def _run_scheduler() -> None:
    from thoughtlog.config import get_settings
    from thoughtlog.scheduler.jobs import build_scheduler
    from thoughtlog.service import build_service

    settings = get_settings()
    service = build_service(settings)

    scheduler = build_scheduler(service.queue, settings.pending_sweep_interval_minutes)
    scheduler.start()
    logger.info(
        "Scheduler started (pending sweep every %d minutes)",
        settings.pending_sweep_interval_minutes,
    )

    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
        logger.info("Shutting down...")
    finally:
        scheduler.shutdown()
        logger.info("Goodbye.")


async def _run_sweep() -> None:
    from thoughtlog.service import build_service

    result = await build_service().retry_all_pending()
    logger.info(
        "Sweep done: %d processed, %d succeeded, %d failed, %d skipped",
        result.processed,
        result.succeeded,
        result.failed,
        result.skipped,
    )


async def _run_text(text: str) -> None:
    from thoughtlog.service import LoggingProgressSink, build_service

    saved = await build_service().submit_text(text, sink=LoggingProgressSink())
    print(f"Log {saved.id} ({saved.date.isoformat()}): {saved.segment_count} segments")
    for todo in saved.todos:
        print(f"  todo [p{todo.priority}] {todo.text}")
    for idea in saved.ideas:
        print(f"  idea {idea.text}")
    for learning in saved.learnings:
        print(f"  learning {learning.text}")
    for accomplishment in saved.accomplishments:
        print(f"  accomplishment {accomplishment.text}")


if __name__ == "__main__":
    # Dispatch on first argument: `sweep`, `text "..."`, or nothing for the scheduler
    command = sys.argv[1] if len(sys.argv) > 1 else None
    if command == "sweep":
        asyncio.run(_run_sweep())
    elif command == "text":
        if len(sys.argv) < 3:
            print('Usage: python -m thoughtlog text "your note"', file=sys.stderr)
            sys.exit(2)
        asyncio.run(_run_text(" ".join(sys.argv[2:])))
    elif command is None:
        asyncio.run(_run_scheduler())
    else:
        print(f"Unknown command: {command}", file=sys.stderr)
        sys.exit(2)
