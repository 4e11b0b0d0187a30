"""
Column header reconciliation.

Each sheet kind has its own synonym table, so a bare ``id`` column means
ClientID on a clients sheet and TaskID on a tasks sheet. Labels that match
no synonym are returned unchanged: unknown columns travel through the
pipeline as extra fields instead of being dropped.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple, Union

from .models import EntityKind

CLIENT_FIELDS: Tuple[str, ...] = (
    "ClientID",
    "ClientName",
    "PriorityLevel",
    "RequestedTaskIDs",
    "GroupTag",
    "AttributesJSON",
)

WORKER_FIELDS: Tuple[str, ...] = (
    "WorkerID",
    "WorkerName",
    "Skills",
    "AvailableSlots",
    "MaxLoadPerPhase",
    "WorkerGroup",
    "QualificationLevel",
)

TASK_FIELDS: Tuple[str, ...] = (
    "TaskID",
    "TaskName",
    "Category",
    "Duration",
    "RequiredSkills",
    "PreferredPhases",
    "MaxConcurrent",
)

_CLIENT_SYNONYMS: Dict[str, str] = {
    "client_id": "ClientID",
    "clientid": "ClientID",
    "id": "ClientID",
    "client_name": "ClientName",
    "clientname": "ClientName",
    "name": "ClientName",
    "priority": "PriorityLevel",
    "priority_level": "PriorityLevel",
    "prioritylevel": "PriorityLevel",
    "requested_tasks": "RequestedTaskIDs",
    "requestedtasks": "RequestedTaskIDs",
    "requested_task_ids": "RequestedTaskIDs",
    "requestedtaskids": "RequestedTaskIDs",
    "tasks": "RequestedTaskIDs",
    "group": "GroupTag",
    "group_tag": "GroupTag",
    "grouptag": "GroupTag",
    "attributes": "AttributesJSON",
    "attributes_json": "AttributesJSON",
    "attributesjson": "AttributesJSON",
    "metadata": "AttributesJSON",
}

_WORKER_SYNONYMS: Dict[str, str] = {
    "worker_id": "WorkerID",
    "workerid": "WorkerID",
    "id": "WorkerID",
    "worker_name": "WorkerName",
    "workername": "WorkerName",
    "name": "WorkerName",
    "skills": "Skills",
    "skill": "Skills",
    "available_slots": "AvailableSlots",
    "availableslots": "AvailableSlots",
    "slots": "AvailableSlots",
    "max_load": "MaxLoadPerPhase",
    "maxload": "MaxLoadPerPhase",
    "max_load_per_phase": "MaxLoadPerPhase",
    "maxloadperphase": "MaxLoadPerPhase",
    "load": "MaxLoadPerPhase",
    "worker_group": "WorkerGroup",
    "workergroup": "WorkerGroup",
    "group": "WorkerGroup",
    "qualification": "QualificationLevel",
    "qualification_level": "QualificationLevel",
    "qualificationlevel": "QualificationLevel",
    "level": "QualificationLevel",
}

_TASK_SYNONYMS: Dict[str, str] = {
    "task_id": "TaskID",
    "taskid": "TaskID",
    "id": "TaskID",
    "task_name": "TaskName",
    "taskname": "TaskName",
    "name": "TaskName",
    "category": "Category",
    "type": "Category",
    "duration": "Duration",
    "time": "Duration",
    "required_skills": "RequiredSkills",
    "requiredskills": "RequiredSkills",
    "skills": "RequiredSkills",
    "preferred_phases": "PreferredPhases",
    "preferredphases": "PreferredPhases",
    "phases": "PreferredPhases",
    "max_concurrent": "MaxConcurrent",
    "maxconcurrent": "MaxConcurrent",
    "concurrent": "MaxConcurrent",
    "concurrency": "MaxConcurrent",
}

FIELDS: Mapping[EntityKind, Tuple[str, ...]] = MappingProxyType(
    {
        EntityKind.CLIENTS: CLIENT_FIELDS,
        EntityKind.WORKERS: WORKER_FIELDS,
        EntityKind.TASKS: TASK_FIELDS,
    }
)


def _build_table(fields: Tuple[str, ...], synonyms: Dict[str, str]) -> Mapping[str, str]:
    table = {name.lower(): name for name in fields}
    table.update(synonyms)
    return MappingProxyType(table)


SYNONYMS: Mapping[EntityKind, Mapping[str, str]] = MappingProxyType(
    {
        EntityKind.CLIENTS: _build_table(CLIENT_FIELDS, _CLIENT_SYNONYMS),
        EntityKind.WORKERS: _build_table(WORKER_FIELDS, _WORKER_SYNONYMS),
        EntityKind.TASKS: _build_table(TASK_FIELDS, _TASK_SYNONYMS),
    }
)


def canonical_fields(kind: Union[EntityKind, str]) -> Tuple[str, ...]:
    return FIELDS[EntityKind(kind)]


def normalize_header(label: Any, kind: Union[EntityKind, str]) -> str:
    """
    Map a raw column label to the canonical field name for ``kind``.

    Rules:
    - Lower-case and trim, then look the label up in the kind's synonym table.
    - No match returns the label unchanged (non-text labels are stringified,
      None becomes "").
    """
    text = "" if label is None else str(label)
    return SYNONYMS[EntityKind(kind)].get(text.strip().lower(), text)


def is_known_header(label: Any, kind: Union[EntityKind, str]) -> bool:
    text = "" if label is None else str(label)
    return text.strip().lower() in SYNONYMS[EntityKind(kind)]
