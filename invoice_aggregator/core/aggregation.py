import asyncio
import logging
from typing import Iterable, Optional

from invoice_aggregator.core.application_collector import ApplicationCollector
from invoice_aggregator.core.branch_assembler import BranchAssembler
from invoice_aggregator.core.concurrency import gather_or_cancel
from invoice_aggregator.core.config import settings
from invoice_aggregator.core.exceptions import AggregationTimeoutError, NotFoundError
from invoice_aggregator.core.status_registry import StatusRegistry
from invoice_aggregator.core.status_resolver import StatusResolver
from invoice_aggregator.db.store import InvoiceDataStore
from invoice_aggregator.schemas.invoice_data import InvoiceData

logger = logging.getLogger(__name__)


class AggregationCoordinator:
    """
    Builds the billing report tree for one customer.

    customer header -> qualifying applications -> (branch assembly || one
    status fan-out per application) -> InvoiceData. A fatal error in any
    branch of the fan-out cancels the siblings and is re-raised on its own;
    no partial tree is returned.
    """

    def __init__(
        self,
        store: InvoiceDataStore,
        timeout: Optional[float] = None,
        delimiter: Optional[str] = None,
        allowed_tables: Optional[Iterable[str]] = None,
    ):
        self.store = store
        self.timeout = settings.AGGREGATION_TIMEOUT_SECONDS if timeout is None else timeout
        registry = StatusRegistry(
            store,
            allowed_tables=settings.STATUS_TABLE_ALLOWLIST if allowed_tables is None else allowed_tables,
        )
        self.collector = ApplicationCollector(store)
        self.assembler = BranchAssembler(store)
        self.resolver = StatusResolver(
            registry,
            store,
            delimiter=settings.SERVICE_ID_DELIMITER if delimiter is None else delimiter,
        )

    async def aggregate(self, customer_id: int) -> InvoiceData:
        logger.info(f"Invoice aggregation STARTED for customer: {customer_id}")
        if not self.timeout:
            result = await self._aggregate(customer_id)
        else:
            try:
                result = await asyncio.wait_for(self._aggregate(customer_id), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.error(f"Invoice aggregation timed out for customer {customer_id} after {self.timeout}s")
                raise AggregationTimeoutError(customer_id, self.timeout)
        logger.info(
            f"Invoice aggregation COMPLETED for customer: {customer_id}. "
            f"Branches: {len(result.applications_by_branch)}"
        )
        return result

    async def _aggregate(self, customer_id: int) -> InvoiceData:
        customer = await self.store.fetch_customer_header(customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)

        applications = await self.collector.collect(customer_id)

        branches, *statuses = await gather_or_cancel(
            [self.assembler.assemble(applications)]
            + [self.resolver.resolve(application) for application in applications]
        )

        for application, entries in zip(applications, statuses):
            application.status_details = entries

        return InvoiceData(customer_info=customer, applications_by_branch=branches)
