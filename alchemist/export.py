"""
Cleaned export package.

The package mirrors what the upload screen offered for download:
clients_cleaned.csv, workers_cleaned.csv, tasks_cleaned.csv,
rules_config.json and, optionally, validation_report.json.
"""

from __future__ import annotations

import csv
import hashlib
import io
import json
import logging
import zipfile
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .business import Rule, active_rules
from .headers import canonical_fields
from .models import Diagnostic, EntityKind, Severity
from .records import Record, extra_column_names
from .rules import NORMALIZED_DELIMITER, TARGET_ENCODING

logger = logging.getLogger(__name__)

RECOMMENDATIONS = [
    "Review duplicate client entries",
    "Ensure all required skills are covered by workers",
    "Validate task dependencies for circular references",
]

# zip entries get a fixed timestamp so identical input gives identical bytes
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def records_to_csv(records: Sequence[Record], kind: EntityKind) -> str:
    """
    Serialize records as CSV text.

    Canonical columns come first in schema order, then pass-through columns in
    first-seen order. An empty collection yields an empty string.
    """
    if not records:
        return ""

    headers = list(canonical_fields(kind)) + extra_column_names(records)
    out = io.StringIO(newline="")
    writer = csv.writer(out, delimiter=NORMALIZED_DELIMITER, lineterminator="\n")
    writer.writerow(headers)
    for record in records:
        row = record.to_row()
        writer.writerow([_csv_value(row.get(header)) for header in headers])
    return out.getvalue()


def build_rules_config(
    rules: Sequence[Rule],
    priorities: Mapping[str, float],
    clients: Sequence[Record],
    workers: Sequence[Record],
    tasks: Sequence[Record],
    generated_at: datetime,
) -> Dict[str, Any]:
    enabled = active_rules(rules)
    return {
        "rules": [rule.model_dump(mode="json") for rule in enabled],
        "priorities": dict(priorities),
        "metadata": {
            "generatedAt": generated_at.isoformat(),
            "totalClients": len(clients),
            "totalWorkers": len(workers),
            "totalTasks": len(tasks),
            "activeRules": len(enabled),
        },
    }


def build_validation_report(diagnostics: Sequence[Diagnostic], validated_at: datetime) -> Dict[str, Any]:
    errors = sum(1 for d in diagnostics if d.severity is Severity.ERROR)
    return {
        "summary": {
            "totalErrors": errors,
            "totalWarnings": len(diagnostics) - errors,
            "validationDate": validated_at.isoformat(),
        },
        "errors": [d.model_dump(mode="json") for d in diagnostics],
        "recommendations": list(RECOMMENDATIONS),
    }


def build_export_package(
    clients: Sequence[Record],
    workers: Sequence[Record],
    tasks: Sequence[Record],
    rules: Sequence[Rule],
    priorities: Mapping[str, float],
    generated_at: datetime,
    diagnostics: Optional[Sequence[Diagnostic]] = None,
) -> bytes:
    """
    Zip the cleaned collections and configuration.

    validation_report.json is written only when ``diagnostics`` is given.
    CSV members are UTF-8 with BOM.
    """
    files: List[tuple[str, bytes]] = [
        ("clients_cleaned.csv", records_to_csv(clients, EntityKind.CLIENTS).encode(TARGET_ENCODING)),
        ("workers_cleaned.csv", records_to_csv(workers, EntityKind.WORKERS).encode(TARGET_ENCODING)),
        ("tasks_cleaned.csv", records_to_csv(tasks, EntityKind.TASKS).encode(TARGET_ENCODING)),
        (
            "rules_config.json",
            json.dumps(
                build_rules_config(rules, priorities, clients, workers, tasks, generated_at), indent=2
            ).encode("utf-8"),
        ),
    ]
    if diagnostics is not None:
        files.append(
            (
                "validation_report.json",
                json.dumps(build_validation_report(diagnostics, generated_at), indent=2).encode("utf-8"),
            )
        )

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, payload in files:
            archive.writestr(zipfile.ZipInfo(name, date_time=_ZIP_DATE_TIME), payload)
            logger.debug("Packed %s (%d bytes, sha256=%s)", name, len(payload), _sha256_hex(payload))
    data = buffer.getvalue()

    logger.info("Built export package with %d files (%d bytes)", len(files), len(data))
    return data
