"""
Multi-pass validation of the three normalized collections.

Per record, checks are appended in a fixed order: identifier checks, range
checks, format checks, list-reference checks, then the phase pattern check.
Records are visited in collection order, so identical input always yields
the same diagnostics in the same order. Nothing here raises on bad data and
nothing mutates its input.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Set

from .jsonvalue import parse_json
from .models import Diagnostic, EntityKind, Severity, ValidationReport, ValidationSummary
from .records import Client, Task, Worker
from .rules import (
    CHECKS,
    MIN_DURATION,
    MIN_MAX_CONCURRENT,
    MIN_MAX_LOAD,
    PHASE_LIST_PATTERN,
    PHASE_RANGE_PATTERN,
    PRIORITY_RANGE,
    QUALIFICATION_RANGE,
    CheckKind,
)

logger = logging.getLogger(__name__)


def diagnostic(
    check: CheckKind,
    entity: EntityKind,
    row_index: Optional[int] = None,
    field: Optional[str] = None,
    value: object = "",
    token: Optional[str] = None,
) -> Diagnostic:
    """
    Build a diagnostic whose severity, message and suggestion come from the check catalog.

    The id is ``<entity>-<check>-<row>`` plus ``-<token>`` for list-reference
    checks; the field is not part of it because each check kind reads exactly
    one field. Dataset-level checks (no row) use the bare check kind.
    """

    rule = CHECKS[check]
    if row_index is None:
        diag_id = check.value
    else:
        diag_id = f"{entity.singular}-{check.value}-{row_index}"
        if token is not None:
            diag_id = f"{diag_id}-{token}"
    return Diagnostic(
        id=diag_id,
        severity=rule.severity,
        message=rule.render(label=entity.label, value=value),
        entity=entity,
        row_index=row_index,
        field=field,
        suggestion=rule.suggestion,
    )


def split_list(value: str) -> List[str]:
    """Split a comma-separated cell into trimmed, non-empty tokens."""
    return [token.strip() for token in value.split(",") if token.strip()]


def out_of_range(value, low: int, high: Optional[int] = None) -> bool:
    """
    Blank values are not checked; a present value that is not an integer is
    always out of range.
    """
    if value is None:
        return False
    if isinstance(value, bool) or not isinstance(value, int):
        return True
    if value < low:
        return True
    return high is not None and value > high


def slots_problem(text: str) -> Optional[CheckKind]:
    result = parse_json(text)
    if not result.ok:
        return CheckKind.SLOTS_FORMAT
    slots = result.value
    if not isinstance(slots, list):
        return CheckKind.SLOTS_VALUES
    for slot in slots:
        if isinstance(slot, bool) or not isinstance(slot, int) or slot <= 0:
            return CheckKind.SLOTS_VALUES
    return None


def phases_recognized(text: str) -> bool:
    return bool(PHASE_RANGE_PATTERN.fullmatch(text) or PHASE_LIST_PATTERN.fullmatch(text))


def worker_skill_set(workers: Iterable[Worker]) -> Set[str]:
    return {token.lower() for worker in workers for token in split_list(worker.skills)}


def unique_token(token: str, used: Set[str]) -> str:
    """Id suffix for a list token; a repeat within the same cell gets ``-2``, ``-3``, ..."""
    candidate = token
    occurrence = 1
    while candidate in used:
        occurrence += 1
        candidate = f"{token}-{occurrence}"
    used.add(candidate)
    return candidate


def _identifier_checks(
    entity: EntityKind, index: int, identifier: str, field: str, seen: Set[str]
) -> List[Diagnostic]:
    if not identifier.strip():
        return [diagnostic(CheckKind.MISSING_ID, entity, index, field)]
    if identifier in seen:
        return [diagnostic(CheckKind.DUPLICATE_ID, entity, index, field, value=identifier)]
    seen.add(identifier)
    return []


def validate_clients(clients: Sequence[Client], tasks: Sequence[Task]) -> List[Diagnostic]:
    entity = EntityKind.CLIENTS
    task_ids = {task.task_id for task in tasks}
    seen: Set[str] = set()
    out: List[Diagnostic] = []

    for index, client in enumerate(clients):
        out.extend(_identifier_checks(entity, index, client.client_id, "ClientID", seen))

        if out_of_range(client.priority_level, *PRIORITY_RANGE):
            out.append(
                diagnostic(CheckKind.PRIORITY, entity, index, "PriorityLevel", value=client.priority_level)
            )

        if client.attributes_json and not parse_json(client.attributes_json).ok:
            out.append(diagnostic(CheckKind.ATTRIBUTES_JSON, entity, index, "AttributesJSON"))

        tokens: Set[str] = set()
        for task_id in split_list(client.requested_task_ids):
            if task_id not in task_ids:
                out.append(
                    diagnostic(
                        CheckKind.UNKNOWN_TASK,
                        entity,
                        index,
                        "RequestedTaskIDs",
                        value=task_id,
                        token=unique_token(task_id, tokens),
                    )
                )
    return out


def validate_workers(workers: Sequence[Worker]) -> List[Diagnostic]:
    entity = EntityKind.WORKERS
    seen: Set[str] = set()
    out: List[Diagnostic] = []

    for index, worker in enumerate(workers):
        out.extend(_identifier_checks(entity, index, worker.worker_id, "WorkerID", seen))

        if out_of_range(worker.max_load_per_phase, MIN_MAX_LOAD):
            out.append(
                diagnostic(
                    CheckKind.MAX_LOAD, entity, index, "MaxLoadPerPhase", value=worker.max_load_per_phase
                )
            )
        if out_of_range(worker.qualification_level, *QUALIFICATION_RANGE):
            out.append(
                diagnostic(
                    CheckKind.QUALIFICATION,
                    entity,
                    index,
                    "QualificationLevel",
                    value=worker.qualification_level,
                )
            )

        if worker.available_slots:
            problem = slots_problem(worker.available_slots)
            if problem is not None:
                out.append(diagnostic(problem, entity, index, "AvailableSlots"))
    return out


def validate_tasks(tasks: Sequence[Task], workers: Sequence[Worker]) -> List[Diagnostic]:
    entity = EntityKind.TASKS
    skills = worker_skill_set(workers)
    seen: Set[str] = set()
    out: List[Diagnostic] = []

    for index, task in enumerate(tasks):
        out.extend(_identifier_checks(entity, index, task.task_id, "TaskID", seen))

        if out_of_range(task.duration, MIN_DURATION):
            out.append(diagnostic(CheckKind.DURATION, entity, index, "Duration", value=task.duration))
        if out_of_range(task.max_concurrent, MIN_MAX_CONCURRENT):
            out.append(
                diagnostic(CheckKind.MAX_CONCURRENT, entity, index, "MaxConcurrent", value=task.max_concurrent)
            )

        tokens: Set[str] = set()
        for skill in split_list(task.required_skills):
            skill = skill.lower()
            if skill not in skills:
                out.append(
                    diagnostic(
                        CheckKind.SKILL_COVERAGE,
                        entity,
                        index,
                        "RequiredSkills",
                        value=skill,
                        token=unique_token(skill, tokens),
                    )
                )

        if task.preferred_phases and not phases_recognized(task.preferred_phases):
            out.append(
                diagnostic(
                    CheckKind.PHASES_FORMAT, entity, index, "PreferredPhases", value=task.preferred_phases
                )
            )
    return out


def validate_cross_references(
    clients: Sequence[Client], workers: Sequence[Worker], tasks: Sequence[Task]
) -> List[Diagnostic]:
    """Dataset completeness: the one place that decides whether the dataset is usable at all."""

    out: List[Diagnostic] = []
    if not clients:
        out.append(diagnostic(CheckKind.MISSING_CLIENTS, EntityKind.CLIENTS))
    if not workers:
        out.append(diagnostic(CheckKind.MISSING_WORKERS, EntityKind.WORKERS))
    if not tasks:
        out.append(diagnostic(CheckKind.MISSING_TASKS, EntityKind.TASKS))
    return out


def validate(
    clients: Sequence[Client], workers: Sequence[Worker], tasks: Sequence[Task]
) -> List[Diagnostic]:
    """
    Run every validator in the fixed order clients, workers, tasks, cross-reference.

    Client validation reads task ids and task validation reads worker skills;
    worker validation reads nothing else.
    """
    diagnostics: List[Diagnostic] = []
    diagnostics.extend(validate_clients(clients, tasks))
    diagnostics.extend(validate_workers(workers))
    diagnostics.extend(validate_tasks(tasks, workers))
    diagnostics.extend(validate_cross_references(clients, workers, tasks))

    logger.info(
        "Validated %d clients, %d workers, %d tasks: %d diagnostics",
        len(clients),
        len(workers),
        len(tasks),
        len(diagnostics),
    )
    return diagnostics


def build_report(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    diagnostics: Sequence[Diagnostic],
    limit: Optional[int] = None,
) -> ValidationReport:
    errors = sum(1 for d in diagnostics if d.severity is Severity.ERROR)
    shown = list(diagnostics if limit is None else diagnostics[:limit])
    return ValidationReport(
        summary=ValidationSummary(
            clients=len(clients),
            workers=len(workers),
            tasks=len(tasks),
            errors=errors,
            warnings=len(diagnostics) - errors,
            total=len(diagnostics),
        ),
        diagnostics=shown,
        truncated=len(shown) < len(diagnostics),
    )
