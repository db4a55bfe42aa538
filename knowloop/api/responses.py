"""Success envelope shared by every endpoint"""
from typing import Any, Dict

from pydantic import BaseModel


class EnvelopeResponse(BaseModel):
    """Fields every success body carries"""
    success: bool
    message: str


def ok(message: str, **payload: Any) -> Dict[str, Any]:
    """Build a success body: {"success": true, "message": ..., **payload}"""
    return {"success": True, "message": message, **payload}
