import json
import logging
import re
from typing import Iterable, Optional

from invoice_aggregator.core.exceptions import ConfigParseError
from invoice_aggregator.db.store import InvoiceDataStore
from invoice_aggregator.schemas.invoice_data import RegistryEntry

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
MAX_IDENTIFIER_LENGTH = 63  # PostgreSQL NAMEDATALEN - 1


def is_safe_identifier(name) -> bool:
    return (
        isinstance(name, str)
        and len(name) <= MAX_IDENTIFIER_LENGTH
        and IDENTIFIER_PATTERN.match(name) is not None
    )


class StatusRegistry:
    """
    Maps a service id to the table (and column) holding its completion status.

    The mapping lives in the report-form registry as a JSON document with a
    ``db_table`` key and an optional ``status_column`` key. Only plain SQL
    identifiers are accepted; when an allowlist is configured the table must
    also be on it. Anything else is a ConfigParseError, so no configuration
    value reaches the database unchecked.
    """

    def __init__(self, store: InvoiceDataStore, allowed_tables: Optional[Iterable[str]] = None):
        self.store = store
        self.allowed_tables = frozenset(allowed_tables or ())

    async def resolve(self, service_id: str) -> Optional[RegistryEntry]:
        document = await self.store.fetch_service_registry_entry(service_id)
        if document is None:
            return None
        return self.parse(service_id, document)

    def parse(self, service_id: str, document) -> RegistryEntry:
        if isinstance(document, (str, bytes)):
            try:
                payload = json.loads(document)
            except ValueError as e:
                raise ConfigParseError(service_id, f"not valid JSON ({e})")
        else:
            payload = document

        if not isinstance(payload, dict):
            raise ConfigParseError(service_id, "document is not an object")

        table_name = payload.get("db_table")
        if not table_name:
            raise ConfigParseError(service_id, "missing db_table")
        if not is_safe_identifier(table_name):
            raise ConfigParseError(service_id, f"db_table {table_name!r} is not a valid identifier")
        if self.allowed_tables and table_name not in self.allowed_tables:
            raise ConfigParseError(service_id, f"db_table {table_name!r} is not allowlisted")

        status_column = payload.get("status_column") or "status"
        if not is_safe_identifier(status_column):
            raise ConfigParseError(service_id, f"status_column {status_column!r} is not a valid identifier")

        return RegistryEntry(service_id=service_id, table_name=table_name, status_column=status_column)
