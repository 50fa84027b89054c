import json
from datetime import datetime, timezone
from typing import Optional

from fc_ingestion.core.logger import logger


def log_message_outcome(
    message_id: str,
    acked: bool,
    duration_ms: int,
    source_key: Optional[str] = None,
    records: int = 0,
    successes: int = 0,
    errors: int = 0,
    receive_count: int = 0,
    error: Optional[str] = None,
) -> None:
    """
    One structured line per handled message.
    """
    log_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": "message_processed" if acked else "message_failed",
        "message_id": message_id,
        "source_key": source_key,
        "records": records,
        "successes": successes,
        "errors": errors,
        "duration_ms": duration_ms,
        "receive_count": receive_count,
        "acked": acked,
    }

    if error is not None:
        log_data["error"] = error[:500]  # Truncate long causes
        logger.error(json.dumps(log_data))
    elif errors:
        log_data["event"] = "message_processed_partial"
        logger.warning(json.dumps(log_data))
    else:
        logger.info(json.dumps(log_data))
