"""
Worker entry point - Run with: python -m flowmate.worker
"""

# Load .env file before other imports that might use env vars
from dotenv import load_dotenv

load_dotenv()

import argparse
import asyncio
import json
import logging
import os
import signal
import sys


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Scheduled job worker")
    parser.add_argument(
        "--once",
        metavar="JOB",
        help="Run a single job (reply-to-tweets, post-tweets) and exit"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )
    return parser.parse_args()


logger = logging.getLogger("flowmate.worker")

# Track shutdown state for force-quit on second Ctrl+C
_shutdown_requested = False


def main():
    """Main entry point for the worker process."""
    from flowmate.db import Database
    from flowmate.server.errors import FlowmateError
    from flowmate.server.logging_config import SecretRedactingFilter
    from flowmate.server.services import build_services
    from .loop import WorkerLoop

    global _shutdown_requested

    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(SecretRedactingFilter())
    # Suppress noisy library loggers even in verbose mode
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    db = Database(
        os.environ.get("MONGODB_URI", "mongodb://localhost:27017"),
        os.environ.get("MONGODB_DATABASE", "flowmate"),
    )
    worker = WorkerLoop(build_services(db))

    if args.once:
        try:
            summary = worker.run_job(args.once)
        except FlowmateError as e:
            logger.error(str(e))
            sys.exit(1)
        finally:
            db.close()
        print(json.dumps(summary, indent=2, default=str))
        sys.exit(0 if summary.get("status") != "failed" else 1)

    logger.info("Starting worker process...")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    # Handle shutdown signals
    def shutdown(signum, frame):
        global _shutdown_requested
        signame = signal.Signals(signum).name

        if _shutdown_requested:
            # Second signal - force exit immediately
            logger.warning(f"Received {signame} again, forcing exit...")
            os._exit(1)

        _shutdown_requested = True
        logger.info(f"Received {signame}, shutting down... (press again to force quit)")
        worker.stop()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        loop.run_until_complete(worker.run())
    except KeyboardInterrupt:
        if _shutdown_requested:
            logger.warning("Forcing exit...")
            os._exit(1)
        logger.info("Interrupted, shutting down...")
    finally:
        loop.close()
        db.close()
        logger.info("Worker stopped")


if __name__ == "__main__":
    main()
