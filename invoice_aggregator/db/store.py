from abc import ABC, abstractmethod
from typing import List, Optional
from invoice_aggregator.schemas.invoice_data import Application, Branch, CustomerHeader, RegistryEntry

class InvoiceDataStore(ABC):
    """
    Read-only queries the aggregator depends on.

    Implementations raise TableNotFoundError when a status table is missing
    and QueryError for any other failure. "No row" is returned as None.
    """

    @abstractmethod
    async def fetch_customer_header(self, customer_id: int) -> Optional[CustomerHeader]:
        pass

    @abstractmethod
    async def fetch_qualifying_applications(self, customer_id: int) -> List[Application]:
        pass

    @abstractmethod
    async def fetch_branch(self, branch_id: int) -> Optional[Branch]:
        pass

    @abstractmethod
    async def fetch_service_registry_entry(self, service_id: str) -> Optional[str]:
        """Return the raw report-form document for a service, or None."""
        pass

    @abstractmethod
    async def fetch_service_status(self, entry: RegistryEntry, application_id: int) -> Optional[str]:
        pass
