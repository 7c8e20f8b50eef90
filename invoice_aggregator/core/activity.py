from abc import ABC, abstractmethod
from typing import List, Optional
from invoice_aggregator.schemas.activity import ActivityLogEntry
import logging

logger = logging.getLogger(__name__)

class ActivityLogger(ABC):
    @abstractmethod
    def save(self, entry: ActivityLogEntry):
        pass

    @abstractmethod
    def get_all(self) -> List[ActivityLogEntry]:
        pass

    def record(self, principal_id, entity: str, action: str, success: bool, detail: Optional[str] = None):
        """Fire-and-forget: a failing sink is logged, never raised to the caller."""
        try:
            self.save(ActivityLogEntry(
                principal_id=str(principal_id),
                entity=entity,
                action=action,
                success=success,
                detail=detail
            ))
        except Exception as e:
            logger.error(f"Activity Logging Failed: {e}")

class InMemoryActivityLogger(ActivityLogger):
    def __init__(self):
        self._storage: List[ActivityLogEntry] = []

    def save(self, entry: ActivityLogEntry):
        # Append-only
        self._storage.append(entry)
        logger.info(f"Activity Logged: {entry.model_dump_json()}")

    def get_all(self) -> List[ActivityLogEntry]:
        return list(self._storage)

# Global Accessor
activity_log = InMemoryActivityLogger()
