"""Command-line entry point: run one archive sync and exit.

Exit codes: 0 when the run completed (channel skips included), 1 when the
run aborted, 2 when configuration is missing or invalid.
"""

import asyncio
import sys

from slack_archive.services.sync_orchestrator import run_sync
from slack_archive.utils.config import SyncConfig
from slack_archive.utils.errors import ArchiverError, ConfigurationError
from slack_archive.utils.logging import get_structured_logger
from slack_archive.utils.logging_config import LoggingConfig

logger = get_structured_logger("slack_archive")


def main() -> int:
    LoggingConfig.setup_logging()

    try:
        config = SyncConfig.from_env()
    except ConfigurationError as e:
        logger.error("Sync not started: bad configuration", error=str(e))
        return 2

    try:
        run = asyncio.run(run_sync(config))
    except ArchiverError as e:
        logger.error("Sync failed", error=str(e))
        return 1

    logger.info(
        "Sync finished",
        run_id=run.id,
        status=run.status.value,
        total_messages=run.total_messages,
        total_replies=run.total_replies,
        channels_processed=run.channels_processed,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
