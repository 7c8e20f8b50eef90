from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from invoice_aggregator.api.dependencies import get_activity_logger, get_auth_gateway, get_coordinator
from invoice_aggregator.core.activity import ActivityLogger
from invoice_aggregator.core.aggregation import AggregationCoordinator
from invoice_aggregator.core.auth import AuthGateway
from invoice_aggregator.core.exceptions import (
    AggregationTimeoutError,
    DataIntegrityError,
    InvoiceAggregationError,
    NotFoundError,
    QueryError,
)
from invoice_aggregator.schemas.invoice_data import GenerateInvoiceResponse

router = APIRouter()
logger = logging.getLogger(__name__)

ACTIVITY_ENTITY = "Invoice"
ACTIVITY_ACTION = "Generate"

def _status_code_for(error: InvoiceAggregationError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, DataIntegrityError):
        return 409
    if isinstance(error, AggregationTimeoutError):
        return 504
    return 500

@router.get("/admin/generate-invoice", response_model=GenerateInvoiceResponse)
async def generate_invoice(
    customer_id: Optional[int] = Query(None),
    admin_id: Optional[int] = Query(None),
    token: Optional[str] = Query(None, alias="_token"),
    coordinator: AggregationCoordinator = Depends(get_coordinator),
    auth: AuthGateway = Depends(get_auth_gateway),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    missing_fields = []
    if customer_id is None:
        missing_fields.append("Customer ID")
    if admin_id is None:
        missing_fields.append("Admin ID")
    if not token:
        missing_fields.append("Token")
    if missing_fields:
        raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing_fields)}")

    try:
        check = await auth.is_token_valid(token, admin_id)
    except QueryError as e:
        logger.error(f"Error checking token validity: {e.message}")
        raise HTTPException(status_code=500, detail="Unable to validate token")
    if not check.valid:
        raise HTTPException(status_code=401, detail=check.message)

    try:
        data = await coordinator.aggregate(customer_id)
    except InvoiceAggregationError as e:
        logger.error(f"Invoice data aggregation failed for customer {customer_id}: {e.message}")
        activity.record(admin_id, ACTIVITY_ENTITY, ACTIVITY_ACTION, False, e.message)
        # Error bodies carry the refreshed token as well.
        return JSONResponse(
            status_code=_status_code_for(e),
            content={"status": False, "message": e.message, "token": check.refreshed_token},
        )

    activity.record(admin_id, ACTIVITY_ENTITY, ACTIVITY_ACTION, True, f"{{customer_id: {customer_id}}}")
    return GenerateInvoiceResponse(
        message="Invoice data fetched successfully",
        data=data,
        token=check.refreshed_token,
    )
