# model/verdict.py
from pydantic import BaseModel, Field
from util.types import InfringementType


class FilterVerdict(BaseModel):
    is_infringement: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    infringement_type: InfringementType | None = None
    # set only on the policy default, never on a parsed model reply
    fail_open: bool = False
