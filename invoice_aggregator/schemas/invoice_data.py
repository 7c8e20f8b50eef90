from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date, datetime

# Output tree of one aggregation. Field names stay snake_case in Python;
# JSON keys follow the billing report contract (customerInfo, statusDetails, ...).

class ApplicationStatus(str, Enum):
    COMPLETED = "completed"
    CLOSED = "closed"

QUALIFYING_STATUSES = (ApplicationStatus.COMPLETED.value, ApplicationStatus.CLOSED.value)

class UnresolvedReason(str, Enum):
    NO_REGISTRY_ENTRY = "no_registry_entry"
    MALFORMED_CONFIG = "malformed_config"
    TABLE_NOT_FOUND = "table_not_found"

class CustomerHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    client_unique_id: Optional[str] = None
    name: str
    emails: Optional[str] = None
    mobile: Optional[str] = None
    services: Optional[str] = None
    address: Optional[str] = None
    contact_person_name: Optional[str] = None
    escalation_point_contact: Optional[str] = None
    single_point_of_contact: Optional[str] = None
    gst_number: Optional[str] = None
    payment_contact_person: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    client_standard: Optional[str] = None
    agreement_text: Optional[str] = None
    agreement_duration: Optional[str] = None
    agreement_expiration_date: Optional[date] = None

class RegistryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    service_id: str
    table_name: str
    status_column: str = "status"

class ServiceStatusEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_id: str = Field(alias="serviceId")
    status: Optional[str] = None
    resolved: bool = True
    unresolved_reason: Optional[UnresolvedReason] = Field(default=None, alias="unresolvedReason")

    @classmethod
    def unresolved(cls, service_id: str, reason: UnresolvedReason) -> "ServiceStatusEntry":
        return cls(service_id=service_id, status=None, resolved=False, unresolved_reason=reason)

class Application(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    branch_id: int
    customer_id: int
    application_id: Optional[str] = None
    employee_id: Optional[str] = None
    name: Optional[str] = None
    services: Optional[str] = None
    status: ApplicationStatus
    created_at: Optional[datetime] = None
    report_date: Optional[date] = None
    status_details: List[ServiceStatusEntry] = Field(default_factory=list, alias="statusDetails")

class Branch(BaseModel):
    id: int
    name: str
    applications: List[Application] = Field(default_factory=list)

class InvoiceData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_info: CustomerHeader = Field(alias="customerInfo")
    applications_by_branch: List[Branch] = Field(default_factory=list, alias="applicationsByBranch")

class GenerateInvoiceResponse(BaseModel):
    status: bool = True
    message: str
    data: InvoiceData
    token: Optional[str] = None
