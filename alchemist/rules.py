"""
Deterministic normalization and validation rules.

This file exists to make non-goals explicit and enforceable. Every check the
validators can emit is listed in CHECKS together with its severity; the
validators decide *whether* a check fires, never *how bad* it is.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional

from .models import CheckCatalogEntry, Severity

TARGET_ENCODING = "utf-8-sig"  # UTF-8 with BOM
NORMALIZED_DELIMITER = ","
CANDIDATE_DELIMITERS = [",", ";", "\t", "|"]
SNIFF_SAMPLE_SIZE = 4096

PRIORITY_RANGE = (1, 5)
QUALIFICATION_RANGE = (1, 10)
MIN_MAX_LOAD = 1
MIN_DURATION = 1
MIN_MAX_CONCURRENT = 1

PHASE_RANGE_PATTERN = re.compile(r"[0-9]+-[0-9]+")
PHASE_LIST_PATTERN = re.compile(r"\[[0-9]+(,[0-9]+)*\]")


class CheckKind(str, Enum):
    MISSING_ID = "missing-id"
    DUPLICATE_ID = "duplicate"
    PRIORITY = "priority"
    ATTRIBUTES_JSON = "json"
    SLOTS_VALUES = "slots"
    SLOTS_FORMAT = "slots-format"
    MAX_LOAD = "load"
    QUALIFICATION = "qualification"
    DURATION = "duration"
    MAX_CONCURRENT = "concurrent"
    UNKNOWN_TASK = "unknown-task"
    SKILL_COVERAGE = "skill-coverage"
    PHASES_FORMAT = "phases-format"
    MISSING_CLIENTS = "missing-clients"
    MISSING_WORKERS = "missing-workers"
    MISSING_TASKS = "missing-tasks"


@dataclass(frozen=True)
class CheckRule:
    severity: Severity
    message: str  # str.format template; may use {label} and {value}
    suggestion: Optional[str] = None

    def render(self, label: str = "", value: object = "") -> str:
        return self.message.format(label=label, value=value)


CHECKS: Mapping[CheckKind, CheckRule] = MappingProxyType(
    {
        CheckKind.MISSING_ID: CheckRule(
            Severity.ERROR,
            "Missing {label} ID",
            "Give every row a non-empty identifier.",
        ),
        CheckKind.DUPLICATE_ID: CheckRule(
            Severity.ERROR,
            "Duplicate {label} ID: {value}",
            "Rename or remove the repeated row so each ID appears once.",
        ),
        CheckKind.PRIORITY: CheckRule(
            Severity.ERROR,
            "Priority level must be between 1-5, got: {value}",
            "Use a whole number from 1 (lowest) to 5 (highest).",
        ),
        CheckKind.ATTRIBUTES_JSON: CheckRule(
            Severity.ERROR,
            "Invalid JSON in AttributesJSON",
            'Use valid JSON such as {"location": "NY"}, or leave the cell empty.',
        ),
        CheckKind.SLOTS_VALUES: CheckRule(
            Severity.ERROR,
            "AvailableSlots must be array of positive integers",
            "List phase numbers as a JSON array, e.g. [1,2,3].",
        ),
        CheckKind.SLOTS_FORMAT: CheckRule(
            Severity.ERROR,
            "Invalid format for AvailableSlots",
            "List phase numbers as a JSON array, e.g. [1,2,3].",
        ),
        CheckKind.MAX_LOAD: CheckRule(
            Severity.ERROR,
            "MaxLoadPerPhase must be at least 1, got: {value}",
            "Set the maximum number of tasks per phase to 1 or more.",
        ),
        CheckKind.QUALIFICATION: CheckRule(
            Severity.WARNING,
            "Unusual qualification level: {value}",
            "Qualification levels are normally between 1 and 10.",
        ),
        CheckKind.DURATION: CheckRule(
            Severity.ERROR,
            "Duration must be at least 1, got: {value}",
            "Express duration as a whole number of phases, 1 or more.",
        ),
        CheckKind.MAX_CONCURRENT: CheckRule(
            Severity.ERROR,
            "MaxConcurrent must be at least 1, got: {value}",
            "Allow at least one concurrent assignment.",
        ),
        CheckKind.UNKNOWN_TASK: CheckRule(
            Severity.ERROR,
            "Unknown task ID referenced: {value}",
            "Add the task to the tasks sheet or remove it from RequestedTaskIDs.",
        ),
        CheckKind.SKILL_COVERAGE: CheckRule(
            Severity.WARNING,
            "Required skill '{value}' not available in any worker",
            "Add a worker with this skill or relax the task's RequiredSkills.",
        ),
        CheckKind.PHASES_FORMAT: CheckRule(
            Severity.WARNING,
            "PreferredPhases format unclear: {value}",
            'Use a range like "1-3" or a list like "[1,2,3]".',
        ),
        CheckKind.MISSING_CLIENTS: CheckRule(
            Severity.ERROR,
            "No client data found",
            "Upload a clients sheet.",
        ),
        CheckKind.MISSING_WORKERS: CheckRule(
            Severity.WARNING,
            "No worker data found - tasks cannot be assigned",
            "Upload a workers sheet.",
        ),
        CheckKind.MISSING_TASKS: CheckRule(
            Severity.WARNING,
            "No task data found",
            "Upload a tasks sheet.",
        ),
    }
)


def check_catalog() -> List[CheckCatalogEntry]:
    return [
        CheckCatalogEntry(
            check=kind.value,
            severity=rule.severity,
            message=rule.message,
            suggestion=rule.suggestion,
        )
        for kind, rule in CHECKS.items()
    ]
