"""
Pydantic schemas for the diagnostics report.
"""
from typing import Any, Dict, List
from pydantic import BaseModel, Field


class DiagnosticSection(BaseModel):
    """Result of one diagnostic check."""
    name: str
    ok: bool
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class DiagnosticReport(BaseModel):
    """All diagnostic checks."""
    ok: bool
    sections: List[DiagnosticSection]
