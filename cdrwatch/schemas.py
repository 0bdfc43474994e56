from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import datetime

class CdrRecord(BaseModel):
    xml_cdr_uuid: str
    leg: Literal["a", "b"]
    filename: str = Field(description="basename of the landing file")
    hostname: str
    xml: Optional[str] = None
    insert_date: datetime
