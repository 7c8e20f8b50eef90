"""
Error taxonomy for invoice data aggregation.

Fatal errors (NotFoundError, DataIntegrityError, QueryError) abort the whole
aggregation. ConfigParseError and TableNotFoundError are raised by the
registry and the store but are caught per service by the status resolver and
surfaced as unresolved status entries.
"""
from typing import Optional


class InvoiceAggregationError(Exception):
    """Base class for every error raised by the aggregator."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r})"


class NotFoundError(InvoiceAggregationError):
    """A customer or branch assumed to exist is missing."""

    def __init__(self, entity: str, entity_id) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class DataIntegrityError(InvoiceAggregationError):
    """
    An application references a branch with no branch record.

    Signals a broken foreign-key relationship; callers should escalate, not retry.
    """

    def __init__(self, message: str, branch_id=None, application_ids: Optional[list] = None) -> None:
        self.branch_id = branch_id
        self.application_ids = application_ids or []
        super().__init__(message)


class ConfigParseError(InvoiceAggregationError):
    """A registry document for a service is malformed or names an unusable table."""

    def __init__(self, service_id: str, reason: str) -> None:
        self.service_id = service_id
        self.reason = reason
        super().__init__(f"Invalid report form for service {service_id}: {reason}")


class TableNotFoundError(InvoiceAggregationError):
    """The status table named by a registry entry does not exist."""

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(f"Table {table_name} does not exist")


class QueryError(InvoiceAggregationError):
    """Any other data-store failure. Not retried."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.original_error = original_error
        if original_error is not None:
            message = f"{message} | Original error: {type(original_error).__name__}: {original_error}"
        super().__init__(message)


class AggregationTimeoutError(QueryError):
    """The aggregation did not finish within AGGREGATION_TIMEOUT_SECONDS."""

    def __init__(self, customer_id, timeout: float) -> None:
        self.customer_id = customer_id
        self.timeout = timeout
        super().__init__(f"Aggregation for customer {customer_id} exceeded {timeout}s")
