from fastapi import Depends

from invoice_aggregator.core.activity import ActivityLogger, activity_log
from invoice_aggregator.core.aggregation import AggregationCoordinator
from invoice_aggregator.core.auth import AuthGateway, PostgresAuthGateway
from invoice_aggregator.db.postgres import PostgresInvoiceDataStore
from invoice_aggregator.db.session import db
from invoice_aggregator.db.store import InvoiceDataStore

def get_store() -> InvoiceDataStore:
    return PostgresInvoiceDataStore(db.pool)

def get_coordinator(store: InvoiceDataStore = Depends(get_store)) -> AggregationCoordinator:
    return AggregationCoordinator(store)

def get_auth_gateway() -> AuthGateway:
    return PostgresAuthGateway(db.pool)

def get_activity_logger() -> ActivityLogger:
    return activity_log
