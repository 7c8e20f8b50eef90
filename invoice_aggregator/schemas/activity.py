from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
import uuid

class ActivityLogEntry(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    principal_id: str
    entity: str
    action: str
    success: bool
    detail: Optional[str] = None
