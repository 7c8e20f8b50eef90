import logging
from typing import List

from invoice_aggregator.db.store import InvoiceDataStore
from invoice_aggregator.schemas.invoice_data import Application

logger = logging.getLogger(__name__)


class ApplicationCollector:
    """Fetches a customer's completed and closed applications."""

    def __init__(self, store: InvoiceDataStore):
        self.store = store

    async def collect(self, customer_id: int) -> List[Application]:
        applications = await self.store.fetch_qualifying_applications(customer_id)
        logger.info(f"Customer {customer_id}: {len(applications)} qualifying applications")
        return applications
