from pydantic import BaseModel
from typing import Optional

class TokenCheck(BaseModel):
    valid: bool
    message: str
    refreshed_token: Optional[str] = None
