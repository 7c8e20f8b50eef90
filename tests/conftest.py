import asyncio
import inspect
import json

import pytest

from invoice_aggregator.core.exceptions import TableNotFoundError
from invoice_aggregator.core.auth import AuthGateway
from invoice_aggregator.db.store import InvoiceDataStore
from invoice_aggregator.schemas.auth import TokenCheck
from invoice_aggregator.schemas.invoice_data import Application, Branch, CustomerHeader


class FakeInvoiceDataStore(InvoiceDataStore):
    """In-memory store that records every query it receives."""

    def __init__(self, customers=None, applications=None, branches=None, report_forms=None,
                 status_tables=None, failing_tables=None, delay=0.0):
        self.customers = customers or {}
        self.applications = applications or []
        self.branches = branches or {}
        self.report_forms = report_forms or {}
        self.status_tables = status_tables or {}
        self.failing_tables = failing_tables or {}
        self.delay = delay
        self.calls = []

    async def _pause(self):
        if self.delay:
            await asyncio.sleep(self.delay)

    async def fetch_customer_header(self, customer_id):
        self.calls.append(("customer", customer_id))
        await self._pause()
        return self.customers.get(customer_id)

    async def fetch_qualifying_applications(self, customer_id):
        self.calls.append(("applications", customer_id))
        await self._pause()
        return [a.model_copy(deep=True) for a in self.applications if a.customer_id == customer_id]

    async def fetch_branch(self, branch_id):
        self.calls.append(("branch", branch_id))
        await self._pause()
        if branch_id not in self.branches:
            return None
        return Branch(id=branch_id, name=self.branches[branch_id])

    async def fetch_service_registry_entry(self, service_id):
        self.calls.append(("registry", service_id))
        await self._pause()
        return self.report_forms.get(service_id)

    async def fetch_service_status(self, entry, application_id):
        self.calls.append(("status", entry.table_name, application_id))
        await self._pause()
        if entry.table_name in self.failing_tables:
            raise self.failing_tables[entry.table_name]
        if entry.table_name not in self.status_tables:
            raise TableNotFoundError(entry.table_name)
        return self.status_tables[entry.table_name].get(application_id)

    def calls_of(self, kind):
        return [call for call in self.calls if call[0] == kind]


class FakeAuthGateway(AuthGateway):
    def __init__(self, valid=True, message="Token is valid", refreshed_token=None):
        self.result = TokenCheck(valid=valid, message=message, refreshed_token=refreshed_token)
        self.calls = []

    async def is_token_valid(self, token, principal_id):
        self.calls.append((token, principal_id))
        return self.result


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool

    async def _dispatch(self, method, query, args):
        self.pool.queries.append((method, query, args))
        result = self.pool.handler(method, query, args)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def fetchrow(self, query, *args):
        return await self._dispatch("fetchrow", query, args)

    async def fetch(self, query, *args):
        return await self._dispatch("fetch", query, args)

    async def fetchval(self, query, *args):
        return await self._dispatch("fetchval", query, args)

    async def execute(self, query, *args):
        return await self._dispatch("execute", query, args)


class _Acquire:
    def __init__(self, pool):
        self.pool = pool

    async def __aenter__(self):
        self.pool.acquired += 1
        return FakeConnection(self.pool)

    async def __aexit__(self, exc_type, exc, tb):
        self.pool.released += 1
        return False


class FakePool:
    """Stands in for asyncpg.Pool; ``handler(method, query, args)`` answers each query."""

    def __init__(self, handler):
        self.handler = handler
        self.acquired = 0
        self.released = 0
        self.queries = []

    def acquire(self):
        return _Acquire(self)


def make_application(id, branch_id, services, customer_id=1, status="completed"):
    return Application(
        id=id,
        branch_id=branch_id,
        customer_id=customer_id,
        application_id=f"APP-{id}",
        name=f"Candidate {id}",
        services=services,
        status=status,
    )


@pytest.fixture
def customer():
    return CustomerHeader(
        id=1,
        client_unique_id="CL-0001",
        name="Acme Screening Pvt Ltd",
        emails="billing@acme.example",
        gst_number="29ABCDE1234F1Z5",
        state="Karnataka",
        state_code="29",
        agreement_duration="12 months",
    )


@pytest.fixture
def scenario_store(customer):
    """
    Customer 1 with branches 10 and 20. Application 100 (branch 10) orders
    S1 (status "done") and S2 (status table missing); application 200
    (branch 20) orders S3 (status "pending").
    """
    return FakeInvoiceDataStore(
        customers={1: customer},
        applications=[
            make_application(100, 10, "S1, S2"),
            make_application(200, 20, "S3"),
        ],
        branches={10: "Head Office", 20: "Pune"},
        report_forms={
            "S1": json.dumps({"db_table": "cmt_s1"}),
            "S2": json.dumps({"db_table": "cmt_s2"}),
            "S3": json.dumps({"db_table": "cmt_s3"}),
        },
        status_tables={
            "cmt_s1": {100: "done"},
            "cmt_s3": {200: "pending"},
        },
    )


@pytest.fixture
def store_factory():
    return FakeInvoiceDataStore


@pytest.fixture
def application_factory():
    return make_application


@pytest.fixture
def auth_factory():
    return FakeAuthGateway


@pytest.fixture
def pool_factory():
    return FakePool
