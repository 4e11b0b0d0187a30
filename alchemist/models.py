from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .business import DEFAULT_PRIORITIES, Rule, check_priorities


class EntityKind(str, Enum):
    CLIENTS = "clients"
    WORKERS = "workers"
    TASKS = "tasks"

    @property
    def singular(self) -> str:
        return self.value[:-1]

    @property
    def label(self) -> str:
        return self.singular.capitalize()


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class SourceFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"


class Diagnostic(BaseModel):
    """One validation finding tied to an entity collection and, usually, a row and field."""

    model_config = ConfigDict(frozen=True)

    id: str
    severity: Severity
    message: str
    entity: EntityKind
    row_index: Optional[int] = None
    field: Optional[str] = None
    suggestion: Optional[str] = None


class ReportItem(BaseModel):
    row: Optional[int] = None
    column: Optional[str] = None
    issue: str
    value: Optional[str] = None
    action: str


class HeaderMapping(BaseModel):
    source: str
    field: str
    mapped: bool


class DecodeReport(BaseModel):
    source_format: SourceFormat
    encoding: Dict[str, Any] = Field(default_factory=dict)
    delimiter: Dict[str, Any] = Field(default_factory=dict)
    headers: List[HeaderMapping] = Field(default_factory=list)
    rows: int = 0
    warnings: List[ReportItem] = Field(default_factory=list)
    errors: List[ReportItem] = Field(default_factory=list)


class DecodeResponse(BaseModel):
    kind: EntityKind
    rows: List[Dict[str, str]]
    report: DecodeReport


class ValidationSummary(BaseModel):
    clients: int = 0
    workers: int = 0
    tasks: int = 0
    errors: int = 0
    warnings: int = 0
    total: int = 0
    deterministic: bool = True


class ValidationReport(BaseModel):
    summary: ValidationSummary
    diagnostics: List[Diagnostic] = Field(default_factory=list)
    truncated: bool = False


class CheckCatalogEntry(BaseModel):
    check: str
    severity: Severity
    message: str
    suggestion: Optional[str] = None


class ValidateRequest(BaseModel):
    clients: List[Dict[str, Any]] = Field(default_factory=list)
    workers: List[Dict[str, Any]] = Field(default_factory=list)
    tasks: List[Dict[str, Any]] = Field(default_factory=list)


class ExportRequest(ValidateRequest):
    rules: List[Rule] = Field(default_factory=list)
    priorities: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_PRIORITIES))
    include_validation_report: bool = True

    @field_validator("priorities")
    @classmethod
    def _weights_in_range(cls, value: Dict[str, float]) -> Dict[str, float]:
        return check_priorities(value)


class HealthResponse(BaseModel):
    ok: bool = True
