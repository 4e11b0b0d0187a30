"""
Business rule catalog and priority weights.

Rules are only described, stored and exported here. Nothing in this package
executes them; allocation happens in a downstream tool that reads
rules_config.json.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping

from pydantic import BaseModel, Field

from .jsonvalue import JsonValue


class RuleType(str, Enum):
    CO_RUN = "coRun"
    SLOT_RESTRICTION = "slotRestriction"
    LOAD_LIMIT = "loadLimit"
    PHASE_WINDOW = "phaseWindow"
    PATTERN_MATCH = "patternMatch"
    PRECEDENCE = "precedence"


RULE_TYPES: Dict[RuleType, Dict[str, str]] = {
    RuleType.CO_RUN: {"label": "Co-Run Tasks", "description": "Tasks that must run together"},
    RuleType.SLOT_RESTRICTION: {
        "label": "Slot Restriction",
        "description": "Limit available slots for groups",
    },
    RuleType.LOAD_LIMIT: {"label": "Load Limit", "description": "Maximum load per worker group"},
    RuleType.PHASE_WINDOW: {
        "label": "Phase Window",
        "description": "Restrict tasks to specific phases",
    },
    RuleType.PATTERN_MATCH: {"label": "Pattern Match", "description": "Rules based on data patterns"},
    RuleType.PRECEDENCE: {"label": "Precedence", "description": "Task execution order"},
}


class Rule(BaseModel):
    id: str
    type: RuleType
    name: str
    description: str = ""
    parameters: Dict[str, JsonValue] = Field(default_factory=dict)
    enabled: bool = True


def active_rules(rules: Iterable[Rule]) -> List[Rule]:
    return [rule for rule in rules if rule.enabled]


DEFAULT_PRIORITIES: Mapping[str, float] = {
    "Priority Level": 0.3,
    "Task Fulfillment": 0.25,
    "Skill Match": 0.2,
    "Load Balance": 0.15,
    "Phase Preference": 0.1,
}


@dataclass(frozen=True)
class PriorityPreset:
    name: str
    description: str
    weights: Mapping[str, float]


PRIORITY_PRESETS: Dict[str, PriorityPreset] = {
    "maximize-fulfillment": PriorityPreset(
        name="Maximize Fulfillment",
        description="Prioritize completing as many requested tasks as possible",
        weights={
            "Priority Level": 0.4,
            "Task Fulfillment": 0.3,
            "Skill Match": 0.15,
            "Load Balance": 0.1,
            "Phase Preference": 0.05,
        },
    ),
    "fair-distribution": PriorityPreset(
        name="Fair Distribution",
        description="Balance workload evenly across all workers",
        weights={
            "Priority Level": 0.15,
            "Task Fulfillment": 0.2,
            "Skill Match": 0.2,
            "Load Balance": 0.35,
            "Phase Preference": 0.1,
        },
    ),
    "skill-optimization": PriorityPreset(
        name="Skill Optimization",
        description="Match tasks to workers with the best skill fit",
        weights={
            "Priority Level": 0.2,
            "Task Fulfillment": 0.2,
            "Skill Match": 0.4,
            "Load Balance": 0.15,
            "Phase Preference": 0.05,
        },
    ),
}


def check_priorities(weights: Mapping[str, float]) -> Dict[str, float]:
    """Return a copy of ``weights`` or raise ValueError if any weight falls outside 0..1."""

    out: Dict[str, float] = {}
    for criterion, weight in weights.items():
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"weight for {criterion!r} must be between 0 and 1, got {weight}")
        out[criterion] = weight
    return out
