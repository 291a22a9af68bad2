"""
Envelope schemas wrapping every backoffice JSON response
"""

from typing import Any, Optional
from pydantic import BaseModel

class StandardResponse(BaseModel):
    """Successful call: human-readable message plus payload"""
    success: bool = True
    message: str
    data: Optional[Any] = None

class ErrorResponse(BaseModel):
    """Failed call; error_code is stable for clients to branch on"""
    success: bool = False
    message: str
    error_code: str = "backoffice_error"
    details: Optional[Any] = None
