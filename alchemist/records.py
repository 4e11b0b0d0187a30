"""
Normalized record collections.

Records are frozen pydantic models keyed by the canonical column names.
Columns the header normalizer did not recognize ride along as extra fields.
Building a record never fails on a bad value: text fields take any scalar,
and integer fields keep unparseable input as text so the validators can
report it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, ClassVar, Dict, List, Tuple, Type, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from .errors import InvalidCollectionError
from .models import EntityKind

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _as_count(value: Any) -> Union[int, str, None]:
    """Integral input -> int; blank -> None; anything else stays as text."""

    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else str(value)

    text = _as_text(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return text
    return int(number) if number.is_integer() else text


Text = Annotated[str, BeforeValidator(_as_text)]
Count = Annotated[Union[int, str, None], BeforeValidator(_as_count)]


class Record(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    kind: ClassVar[EntityKind]
    id_field: ClassVar[str]

    @property
    def identifier(self) -> str:
        return getattr(self, type(self).fields_by_alias()[self.id_field])

    @classmethod
    def fields_by_alias(cls) -> Dict[str, str]:
        return {info.alias or name: name for name, info in cls.model_fields.items()}

    def extra_columns(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    def to_row(self) -> Dict[str, Any]:
        """Canonical columns in schema order, then pass-through columns."""
        return self.model_dump(by_alias=True)


class Client(Record):
    kind: ClassVar[EntityKind] = EntityKind.CLIENTS
    id_field: ClassVar[str] = "ClientID"

    client_id: Text = Field(default="", alias="ClientID")
    client_name: Text = Field(default="", alias="ClientName")
    priority_level: Count = Field(default=None, alias="PriorityLevel")
    requested_task_ids: Text = Field(default="", alias="RequestedTaskIDs")
    group_tag: Text = Field(default="", alias="GroupTag")
    attributes_json: Text = Field(default="", alias="AttributesJSON")


class Worker(Record):
    kind: ClassVar[EntityKind] = EntityKind.WORKERS
    id_field: ClassVar[str] = "WorkerID"

    worker_id: Text = Field(default="", alias="WorkerID")
    worker_name: Text = Field(default="", alias="WorkerName")
    skills: Text = Field(default="", alias="Skills")
    available_slots: Text = Field(default="", alias="AvailableSlots")
    max_load_per_phase: Count = Field(default=None, alias="MaxLoadPerPhase")
    worker_group: Text = Field(default="", alias="WorkerGroup")
    qualification_level: Count = Field(default=None, alias="QualificationLevel")


class Task(Record):
    kind: ClassVar[EntityKind] = EntityKind.TASKS
    id_field: ClassVar[str] = "TaskID"

    task_id: Text = Field(default="", alias="TaskID")
    task_name: Text = Field(default="", alias="TaskName")
    category: Text = Field(default="", alias="Category")
    duration: Count = Field(default=None, alias="Duration")
    required_skills: Text = Field(default="", alias="RequiredSkills")
    preferred_phases: Text = Field(default="", alias="PreferredPhases")
    max_concurrent: Count = Field(default=None, alias="MaxConcurrent")


RECORD_TYPES: Dict[EntityKind, Type[Record]] = {
    EntityKind.CLIENTS: Client,
    EntityKind.WORKERS: Worker,
    EntityKind.TASKS: Task,
}


def load_collection(kind: Union[EntityKind, str], rows: Any) -> Tuple[Record, ...]:
    """
    Build an immutable collection of records of ``kind`` from row mappings.

    Raises InvalidCollectionError when ``rows`` is not a sequence of mappings.
    Rows that already are records of the right type are kept as they are.
    """
    kind = EntityKind(kind)
    model = RECORD_TYPES[kind]

    if isinstance(rows, (str, bytes, bytearray)) or not isinstance(rows, Sequence):
        raise InvalidCollectionError(
            f"{kind.value} must be a list of rows, got {type(rows).__name__}"
        )

    records: List[Record] = []
    for index, row in enumerate(rows):
        if isinstance(row, model):
            records.append(row)
            continue
        if not isinstance(row, Mapping):
            raise InvalidCollectionError(
                f"{kind.value} row {index} must be a mapping, got {type(row).__name__}"
            )
        try:
            records.append(model.model_validate({str(key): value for key, value in row.items()}))
        except ValidationError as exc:
            raise InvalidCollectionError(f"{kind.value} row {index} is not record-shaped: {exc}") from exc

    logger.debug("Loaded %d %s records", len(records), kind.value)
    return tuple(records)


def load_clients(rows: Any) -> Tuple[Client, ...]:
    return load_collection(EntityKind.CLIENTS, rows)  # type: ignore[return-value]


def load_workers(rows: Any) -> Tuple[Worker, ...]:
    return load_collection(EntityKind.WORKERS, rows)  # type: ignore[return-value]


def load_tasks(rows: Any) -> Tuple[Task, ...]:
    return load_collection(EntityKind.TASKS, rows)  # type: ignore[return-value]


def extra_column_names(records: Sequence[Record]) -> List[str]:
    """Pass-through column names in first-seen order."""

    seen: Dict[str, None] = {}
    for record in records:
        for name in record.extra_columns():
            seen.setdefault(name, None)
    return list(seen)

