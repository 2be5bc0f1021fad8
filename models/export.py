# models/export.py

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from .enums import ExportFormat


class ExportRequest(BaseModel):
    format: ExportFormat = ExportFormat.csv
    fields: Optional[List[str]] = Field(None, description="Field keys to include; all when omitted")
    filters: Dict[str, Any] = Field(default_factory=dict)
    template: str = Field("standard", description="'minimal' drops the branded header and footer")
    include_header: bool = True
    include_footer: bool = True
    limit: Optional[int] = Field(None, ge=1, le=50000)
    offset: int = Field(0, ge=0)
