"""Archive sync endpoint (called by Vercel cron)."""

import json
import asyncio
import logging
from slack_archive.services.sync_orchestrator import run_sync
from slack_archive.utils.logging_config import LoggingConfig

logger = logging.getLogger(__name__)
LoggingConfig.setup_logging()


def _response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def handler(request):
    """
    Run one archive sync.
    
    Responds 200 with run totals, or 500 when the run aborted.
    """
    try:
        run = asyncio.run(run_sync())
    except Exception as e:
        logger.error(f"Archive sync failed: {e}", exc_info=True)
        return _response(500, {"ok": False, "error": str(e)})

    return _response(200, {
        "ok": True,
        "run_id": run.id,
        "status": run.status.value,
        "total_messages": run.total_messages,
        "total_replies": run.total_replies,
        "channels_processed": run.channels_processed,
    })
