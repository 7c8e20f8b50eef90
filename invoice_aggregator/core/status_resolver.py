import logging
from typing import List

from invoice_aggregator.core.concurrency import gather_or_cancel
from invoice_aggregator.core.exceptions import ConfigParseError, TableNotFoundError
from invoice_aggregator.core.status_registry import StatusRegistry
from invoice_aggregator.db.store import InvoiceDataStore
from invoice_aggregator.schemas.invoice_data import Application, ServiceStatusEntry, UnresolvedReason

logger = logging.getLogger(__name__)


def parse_service_ids(services, delimiter: str = ",") -> List[str]:
    """Split a delimited service list, trimming ids and dropping empty segments."""
    if not services:
        return []
    return [part.strip() for part in str(services).split(delimiter) if part.strip()]


class StatusResolver:
    """
    Resolves the completion status of every service ordered on an application.

    Missing registry entries, malformed registry documents and missing status
    tables degrade to unresolved entries. Any other store failure propagates.
    """

    def __init__(self, registry: StatusRegistry, store: InvoiceDataStore, delimiter: str = ","):
        self.registry = registry
        self.store = store
        self.delimiter = delimiter

    async def resolve(self, application: Application) -> List[ServiceStatusEntry]:
        service_ids = parse_service_ids(application.services, self.delimiter)
        return await gather_or_cancel(
            self._resolve_service(application, service_id) for service_id in service_ids
        )

    async def _resolve_service(self, application: Application, service_id: str) -> ServiceStatusEntry:
        try:
            entry = await self.registry.resolve(service_id)
        except ConfigParseError as e:
            logger.warning(f"Application {application.id}: {e.message}")
            return ServiceStatusEntry.unresolved(service_id, UnresolvedReason.MALFORMED_CONFIG)

        if entry is None:
            logger.warning(f"Application {application.id}: no report form for service {service_id}")
            return ServiceStatusEntry.unresolved(service_id, UnresolvedReason.NO_REGISTRY_ENTRY)

        try:
            status = await self.store.fetch_service_status(entry, application.id)
        except TableNotFoundError as e:
            logger.warning(f"Application {application.id}: {e.message}. Skipping service {service_id}")
            return ServiceStatusEntry.unresolved(service_id, UnresolvedReason.TABLE_NOT_FOUND)

        return ServiceStatusEntry(service_id=service_id, status=status)
