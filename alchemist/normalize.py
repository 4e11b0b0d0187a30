"""
Tabular decoding: upload bytes -> ordered rows keyed by canonical field names.

Responsibilities:
- encoding detection + normalization (CSV)
- dialect detection (CSV)
- first-sheet extraction (XLSX)
- row length enforcement
- header normalization per sheet kind
- reporting of every adjustment made
"""

from __future__ import annotations

import csv
import datetime as dt
import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import openpyxl
from charset_normalizer import from_bytes
from openpyxl.utils.exceptions import InvalidFileException

from .errors import DecodeError
from .headers import is_known_header, normalize_header
from .models import DecodeReport, EntityKind, HeaderMapping, ReportItem, SourceFormat
from .rules import CANDIDATE_DELIMITERS, NORMALIZED_DELIMITER, SNIFF_SAMPLE_SIZE

logger = logging.getLogger(__name__)


@dataclass
class DecodedSheet:
    kind: EntityKind
    rows: List[Dict[str, str]]
    report: DecodeReport


@dataclass
class _Issues:
    warnings: List[ReportItem] = field(default_factory=list)
    errors: List[ReportItem] = field(default_factory=list)


def source_format_for(filename: str) -> SourceFormat:
    name = filename.lower()
    if name.endswith(".csv"):
        return SourceFormat.CSV
    if name.endswith(".xlsx"):
        return SourceFormat.XLSX
    raise DecodeError(f"Unsupported file type: {filename}")


def infer_entity_kind(filename: str) -> EntityKind:
    """Guess the sheet kind from the upload name; anything unrecognized is a clients sheet."""

    name = filename.lower()
    if "worker" in name:
        return EntityKind.WORKERS
    if "task" in name:
        return EntityKind.TASKS
    return EntityKind.CLIENTS


def decode_text(raw: bytes) -> Tuple[str, Dict[str, Any]]:
    """
    Decode CSV bytes to text with LF newlines.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - If decode fails, fall back to UTF-8, then to replacement characters, and report it.
    - A UTF-8 BOM is dropped.
    - CRLF/CR become LF.
    """
    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and (decode_used.lower().replace("-", "_") in ("utf_8", "utf8")):
        decode_used = "utf-8-sig"

    decode_fallback = False
    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        try:
            text = raw.decode("utf-8-sig")
            decode_used = "utf-8-sig"
        except UnicodeDecodeError:
            # Last resort: keep going deterministically with replacement characters
            text = raw.decode("utf-8", errors="replace")
            decode_used = "utf-8"
        decode_fallback = True

    nl_before = {
        "crlf": text.count("\r\n"),
        "cr": text.count("\r") - text.count("\r\n"),
    }
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    report = {
        "detected": detected,
        "decode_used": decode_used,
        "decode_fallback": decode_fallback,
        "newlines_changed": (nl_before["crlf"] > 0) or (nl_before["cr"] > 0),
    }
    return text, report


def sniff_delimiter(text: str) -> Tuple[str, bool]:
    try:
        dialect = csv.Sniffer().sniff(text[:SNIFF_SAMPLE_SIZE], delimiters=CANDIDATE_DELIMITERS)
    except csv.Error:
        return NORMALIZED_DELIMITER, False
    return dialect.delimiter, True


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    return str(value)


def _is_blank(cells: Sequence[str]) -> bool:
    return all(not cell.strip() for cell in cells)


def _header_row(rows: Iterator[Sequence[str]]) -> Tuple[Optional[List[str]], int]:
    """Consume leading blank rows; return the first non-blank row and its 1-based row number."""
    for number, cells in enumerate(rows, start=1):
        cells = list(cells)
        if not _is_blank(cells):
            return cells, number
    return None, 0


def _build_rows(
    header: Sequence[Any],
    body: Iterable[Sequence[str]],
    kind: EntityKind,
    issues: _Issues,
    first_row_number: int = 2,
) -> Tuple[List[Dict[str, str]], List[HeaderMapping]]:
    """
    Turn header + body cells into row dicts.

    Row width policy:
    - short rows are padded with "" (warning)
    - long rows lose the extra cells (error)
    - rows with only blank cells are skipped
    """
    labels = [_cell_text(label) for label in header]
    fields = [normalize_header(label, kind) for label in labels]
    mappings = [
        HeaderMapping(source=label, field=name, mapped=is_known_header(label, kind))
        for label, name in zip(labels, fields)
    ]

    seen: Dict[str, int] = {}
    for position, name in enumerate(fields):
        if name in seen:
            issues.warnings.append(
                ReportItem(
                    row=first_row_number - 1,
                    column=name,
                    issue="duplicate_column",
                    value=labels[position],
                    action=f"column_{position + 1}_wins",
                )
            )
        seen[name] = position

    width = len(fields)
    rows: List[Dict[str, str]] = []
    for offset, cells in enumerate(body):
        row_number = first_row_number + offset
        cells = list(cells)
        if _is_blank(cells):
            continue

        if len(cells) < width:
            issues.warnings.append(
                ReportItem(
                    row=row_number,
                    issue="row_too_short",
                    value=str(len(cells)),
                    action=f"padded_to_{width}",
                )
            )
            cells = cells + [""] * (width - len(cells))
        elif len(cells) > width:
            extra = cells[width:]
            cells = cells[:width]
            if not _is_blank(extra):
                issues.errors.append(
                    ReportItem(
                        row=row_number,
                        issue="row_too_long",
                        value=str(width + len(extra)),
                        action=f"truncated_to_{width}",
                    )
                )

        rows.append(dict(zip(fields, cells)))
    return rows, mappings


def decode_csv(raw: bytes, kind: Union[EntityKind, str]) -> DecodedSheet:
    kind = EntityKind(kind)
    issues = _Issues()

    text, encoding_report = decode_text(raw)
    delimiter, sniffed = sniff_delimiter(text)

    # one cell may be as large as the whole upload
    if csv.field_size_limit() < len(text):
        csv.field_size_limit(len(text))

    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    try:
        header, header_number = _header_row(reader)
        if header is None:
            rows: List[Dict[str, str]] = []
            mappings: List[HeaderMapping] = []
        else:
            rows, mappings = _build_rows(header, reader, kind, issues, first_row_number=header_number + 1)
    except csv.Error as exc:
        raise DecodeError(f"Malformed CSV near line {reader.line_num}: {exc}") from exc

    report = DecodeReport(
        source_format=SourceFormat.CSV,
        encoding=encoding_report,
        delimiter={
            "detected": delimiter,
            "sniffed": sniffed,
        },
        headers=mappings,
        rows=len(rows),
        warnings=issues.warnings,
        errors=issues.errors,
    )
    logger.info(
        "Decoded %d %s rows from CSV (encoding=%s, delimiter=%r)",
        len(rows),
        kind.value,
        encoding_report["decode_used"],
        delimiter,
    )
    return DecodedSheet(kind=kind, rows=rows, report=report)


def decode_xlsx(raw: bytes, kind: Union[EntityKind, str]) -> DecodedSheet:
    """Decode the first worksheet of an XLSX workbook; its first row is the header."""

    kind = EntityKind(kind)
    issues = _Issues()

    try:
        workbook = openpyxl.load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise DecodeError(f"Could not read workbook: {exc}") from exc

    try:
        if not workbook.worksheets:
            raise DecodeError("Empty spreadsheet")
        sheet = workbook.worksheets[0]
        values = [
            [_cell_text(value) for value in row]
            for row in sheet.iter_rows(values_only=True)
        ]
        sheet_name = sheet.title
    finally:
        workbook.close()

    # read-only sheets report trailing empty cells; trim them before measuring width
    while values and _is_blank(values[-1]):
        values.pop()
    if not values:
        raise DecodeError("Empty spreadsheet")

    header, header_number = _header_row(iter(values))
    while header and not header[-1].strip():
        header.pop()
    rows, mappings = _build_rows(header, values[header_number:], kind, issues, first_row_number=header_number + 1)

    report = DecodeReport(
        source_format=SourceFormat.XLSX,
        encoding={"sheet": sheet_name},
        headers=mappings,
        rows=len(rows),
        warnings=issues.warnings,
        errors=issues.errors,
    )
    logger.info("Decoded %d %s rows from worksheet %r", len(rows), kind.value, sheet_name)
    return DecodedSheet(kind=kind, rows=rows, report=report)


def decode(
    raw: bytes,
    source_format: Union[SourceFormat, str],
    kind: Union[EntityKind, str] = EntityKind.CLIENTS,
) -> DecodedSheet:
    """Decode an upload; ``source_format`` is the only layout difference callers need to state."""

    source_format = SourceFormat(source_format)
    if source_format is SourceFormat.XLSX:
        return decode_xlsx(raw, kind)
    return decode_csv(raw, kind)


def decode_upload(filename: str, raw: bytes, kind: Optional[Union[EntityKind, str]] = None) -> DecodedSheet:
    resolved = EntityKind(kind) if kind is not None else infer_entity_kind(filename)
    return decode(raw, source_format_for(filename), resolved)
