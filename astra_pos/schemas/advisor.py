from pydantic import BaseModel, Field
from typing import Optional


class InsightRequest(BaseModel):
    """A question for the business advisor."""
    query: str = Field(..., min_length=1, max_length=2000)


class InsightTaskResponse(BaseModel):
    task_id: str
    status: str


class InsightResultResponse(BaseModel):
    """State of an advisor task and, once finished, its answer."""
    task_id: str
    status: str
    text: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None
