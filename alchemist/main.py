from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from .business import PRIORITY_PRESETS, RULE_TYPES
from .config import load_settings
from .errors import AlchemistError, DecodeError
from .export import build_export_package
from .logs import configure_logging
from .models import (
    CheckCatalogEntry,
    DecodeResponse,
    EntityKind,
    ExportRequest,
    HealthResponse,
    ValidateRequest,
    ValidationReport,
)
from .normalize import decode_upload
from .records import load_clients, load_tasks, load_workers
from .rules import check_catalog
from .validators import build_report, validate

settings = load_settings()
logger = configure_logging(settings.log_level)

app = FastAPI(
    title=settings.app_name,
    description="Spreadsheet ingestion, header normalization and validation for resource-allocation datasets",
    version="0.1.0",
    debug=settings.debug,
)


def _collections(payload: ValidateRequest):
    try:
        return load_clients(payload.clients), load_workers(payload.workers), load_tasks(payload.tasks)
    except AlchemistError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.get("/checks", response_model=List[CheckCatalogEntry])
def checks():
    return check_catalog()


@app.get("/rules/types")
def rule_types() -> Dict[str, Dict[str, str]]:
    return {rule_type.value: info for rule_type, info in RULE_TYPES.items()}


@app.get("/priorities/presets")
def priority_presets():
    return {
        key: {"name": preset.name, "description": preset.description, "weights": dict(preset.weights)}
        for key, preset in PRIORITY_PRESETS.items()
    }


@app.post("/decode", response_model=DecodeResponse)
async def decode_file(
    file: UploadFile = File(...),
    kind: Optional[EntityKind] = Query(default=None),
):
    filename = file.filename or ""
    if not settings.is_allowed(filename):
        allowed = ", ".join(settings.allowed_file_types)
        raise HTTPException(status_code=422, detail=f"Only {allowed} files are supported")

    raw = await file.read()
    if len(raw) > settings.max_file_size:
        raise HTTPException(status_code=413, detail=f"File exceeds {settings.max_file_size} bytes")

    try:
        sheet = decode_upload(filename, raw, kind)
    except DecodeError as exc:
        logger.warning("Rejected upload %s: %s", filename, exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return DecodeResponse(kind=sheet.kind, rows=sheet.rows, report=sheet.report)


@app.post("/validate", response_model=ValidationReport)
def validate_data(payload: ValidateRequest):
    clients, workers, tasks = _collections(payload)
    diagnostics = validate(clients, workers, tasks)
    return build_report(clients, workers, tasks, diagnostics, limit=settings.max_validation_errors)


@app.post("/export")
def export_package(payload: ExportRequest):
    clients, workers, tasks = _collections(payload)
    diagnostics = validate(clients, workers, tasks) if payload.include_validation_report else None
    data = build_export_package(
        clients,
        workers,
        tasks,
        rules=payload.rules,
        priorities=payload.priorities,
        generated_at=datetime.now(timezone.utc),
        diagnostics=diagnostics,
    )
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="data_alchemist_export.zip"'},
    )
