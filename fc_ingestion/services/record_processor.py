# services/record_processor.py
"""
Per-record transform.

This is the seam for business logic. The default transform only stamps
the record as processed; swap it by passing `transform=` to RecordProcessor.
The processor never touches the network or the record store.
"""
import asyncio
from typing import Any, Callable, Dict, Optional

from fc_ingestion.core.exceptions import ProcessingError
from fc_ingestion.core.logger import logger
from fc_ingestion.schemas.outcome_models import rfc3339_now

Transform = Callable[[Any, int], Any]


def mark_processed(record: Any, index: int) -> Dict[str, Any]:
    """Shallow-merge the processing fields over the record."""
    # non-object records have no keys to merge into
    base = dict(record) if isinstance(record, dict) else {"value": record}
    return {
        **base,
        "processed": True,
        "processingTimestamp": rfc3339_now(),
        "recordIndex": index,
    }


class RecordProcessor:
    def __init__(
        self,
        transform: Optional[Transform] = None,
        work_delay_ms: int = 0,
    ):
        self._transform = transform or mark_processed
        self.work_delay_ms = max(0, work_delay_ms)

    @property
    def work_delay_seconds(self) -> float:
        return self.work_delay_ms / 1000.0

    async def process(self, record: Any, index: int) -> Any:
        """
        Transform one record.

        Raises:
            ProcessingError: the transform rejected the record
        """
        logger.debug("Processing record %d", index)

        if self.work_delay_ms:
            await asyncio.sleep(self.work_delay_seconds)

        try:
            return self._transform(record, index)
        except ProcessingError:
            raise
        except Exception as e:
            raise ProcessingError(str(e) or e.__class__.__name__) from e
