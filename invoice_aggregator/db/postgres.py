import asyncio
import logging
from typing import List, Optional

import asyncpg
from pydantic import ValidationError

from invoice_aggregator.core.exceptions import QueryError, TableNotFoundError
from invoice_aggregator.core.status_registry import is_safe_identifier
from invoice_aggregator.db.store import InvoiceDataStore
from invoice_aggregator.schemas.invoice_data import (
    QUALIFYING_STATUSES,
    Application,
    Branch,
    CustomerHeader,
    RegistryEntry,
)

logger = logging.getLogger(__name__)

CUSTOMER_HEADER_QUERY = """
    SELECT
        c.id,
        c.client_unique_id,
        c.name,
        c.emails,
        c.mobile::text AS mobile,
        c.services,
        cm.address,
        cm.contact_person_name,
        cm.escalation_point_contact,
        cm.single_point_of_contact,
        cm.gst_number,
        cm.payment_contact_person,
        cm.state,
        cm.state_code::text AS state_code,
        cm.client_standard,
        cm.agreement_text,
        cm.agreement_duration::text AS agreement_duration,
        cm.agreement_expiration_date
    FROM customers c
    LEFT JOIN customer_metas cm ON cm.customer_id = c.id
    WHERE c.id = $1
"""

# One row per application: the latest CMT report date is picked laterally so
# the join cannot duplicate an application across the result.
QUALIFYING_APPLICATIONS_QUERY = """
    SELECT
        ca.id,
        ca.branch_id,
        ca.customer_id,
        ca.application_id::text AS application_id,
        ca.employee_id::text AS employee_id,
        ca.name,
        ca.services,
        ca.status,
        ca.created_at,
        cmt.report_date
    FROM client_applications ca
    LEFT JOIN LATERAL (
        SELECT report_date
        FROM cmt_applications
        WHERE client_application_id = ca.id
        ORDER BY report_date DESC NULLS LAST
        LIMIT 1
    ) cmt ON TRUE
    WHERE ca.customer_id = $1
      AND ca.status = ANY($2::text[])
    ORDER BY ca.branch_id, ca.id
"""

BRANCH_QUERY = "SELECT id, name FROM branches WHERE id = $1"

REPORT_FORM_QUERY = 'SELECT "json" FROM report_forms WHERE service_id::text = $1 LIMIT 1'


def quote_identifier(name: str) -> str:
    if not is_safe_identifier(name):
        raise ValueError(f"Refusing to quote unsafe identifier: {name!r}")
    return '"' + name + '"'


class PostgresInvoiceDataStore(InvoiceDataStore):
    """
    asyncpg-backed store. Each query borrows its own pool connection and
    returns it before the coroutine finishes, so concurrent lookups from one
    aggregation run on independent connections.
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def _run(self, method: str, query: str, *args, status_table: Optional[str] = None):
        try:
            async with self.pool.acquire() as connection:
                return await getattr(connection, method)(query, *args)
        except asyncpg.exceptions.UndefinedTableError as e:
            if status_table is not None:
                raise TableNotFoundError(status_table) from e
            raise QueryError("Database query failed", original_error=e) from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            # command_timeout surfaces here as a query failure, not an aggregation timeout
            raise QueryError("Database query failed", original_error=e) from e

    @staticmethod
    def _build(model, row):
        try:
            return model(**dict(row))
        except ValidationError as e:
            raise QueryError(f"Unexpected {model.__name__} row shape", original_error=e) from e

    async def fetch_customer_header(self, customer_id: int) -> Optional[CustomerHeader]:
        row = await self._run("fetchrow", CUSTOMER_HEADER_QUERY, customer_id)
        if row is None:
            return None
        return self._build(CustomerHeader, row)

    async def fetch_qualifying_applications(self, customer_id: int) -> List[Application]:
        rows = await self._run("fetch", QUALIFYING_APPLICATIONS_QUERY, customer_id, list(QUALIFYING_STATUSES))
        return [self._build(Application, row) for row in rows]

    async def fetch_branch(self, branch_id: int) -> Optional[Branch]:
        row = await self._run("fetchrow", BRANCH_QUERY, branch_id)
        if row is None:
            return None
        return self._build(Branch, row)

    async def fetch_service_registry_entry(self, service_id: str) -> Optional[str]:
        return await self._run("fetchval", REPORT_FORM_QUERY, service_id)

    async def fetch_service_status(self, entry: RegistryEntry, application_id: int) -> Optional[str]:
        query = (
            f"SELECT {quote_identifier(entry.status_column)}::text "
            f"FROM {quote_identifier(entry.table_name)} "
            f"WHERE client_application_id = $1 "
            # several rows per application resolve to the same value on every call
            f"ORDER BY 1 NULLS LAST LIMIT 1"
        )
        logger.debug(f"Status lookup: table={entry.table_name} application={application_id}")
        return await self._run("fetchval", query, application_id, status_table=entry.table_name)
