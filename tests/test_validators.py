import copy

from alchemist.models import EntityKind, Severity
from alchemist.records import load_clients, load_tasks, load_workers
from alchemist.validators import (
    out_of_range,
    phases_recognized,
    split_list,
    unique_token,
    validate,
    validate_clients,
    validate_cross_references,
    validate_tasks,
    validate_workers,
)

WORKERS = load_workers([{"WorkerID": "W1", "Skills": "Python, SQL"}])
TASKS = load_tasks([{"TaskID": "T1"}, {"TaskID": "T2"}])
CLIENTS = load_clients([{"ClientID": "C1", "PriorityLevel": 1}])


def _ids(diagnostics):
    return [d.id for d in diagnostics]


def _for(entity, diagnostics):
    return [d for d in diagnostics if d.entity is entity]


def test_unknown_task_reference_scenario():
    clients = load_clients([{"ClientID": "C1", "PriorityLevel": 3, "RequestedTaskIDs": "T1,T9"}])
    tasks = load_tasks([{"TaskID": "T1"}])

    diagnostics = _for(EntityKind.CLIENTS, validate(clients, WORKERS, tasks))

    assert len(diagnostics) == 1
    diag = diagnostics[0]
    assert diag.severity is Severity.ERROR
    assert diag.row_index == 0
    assert diag.field == "RequestedTaskIDs"
    assert "T9" in diag.message
    assert "T1" not in diag.message


def test_negative_slot_scenario():
    workers = load_workers([{"WorkerID": "W1", "AvailableSlots": "[1,2,-3]"}])

    diagnostics = _for(EntityKind.WORKERS, validate(CLIENTS, workers, TASKS))

    assert len(diagnostics) == 1
    assert diagnostics[0].severity is Severity.ERROR
    assert diagnostics[0].field == "AvailableSlots"
    assert diagnostics[0].id == "worker-slots-0"


def test_all_collections_empty_scenario():
    diagnostics = validate((), (), ())

    assert _ids(diagnostics) == ["missing-clients", "missing-workers", "missing-tasks"]
    assert [d.severity for d in diagnostics] == [Severity.ERROR, Severity.WARNING, Severity.WARNING]
    assert all(d.row_index is None and d.field is None for d in diagnostics)


def test_preferred_phases_scenario():
    tasks = load_tasks(
        [
            {"TaskID": "T1", "PreferredPhases": "1-3"},
            {"TaskID": "T2", "PreferredPhases": "banana"},
        ]
    )

    diagnostics = _for(EntityKind.TASKS, validate(CLIENTS, WORKERS, tasks))

    assert len(diagnostics) == 1
    assert diagnostics[0].severity is Severity.WARNING
    assert diagnostics[0].row_index == 1
    assert diagnostics[0].field == "PreferredPhases"


def test_duplicates_yield_k_minus_one_errors():
    tasks = load_tasks([{"TaskID": t} for t in ["T1", "T2", "T1", "T3", "T1"]])

    diagnostics = validate_tasks(tasks, WORKERS)

    assert _ids(diagnostics) == ["task-duplicate-2", "task-duplicate-4"]
    assert all(d.severity is Severity.ERROR and d.field == "TaskID" for d in diagnostics)
    assert diagnostics[0].message == "Duplicate Task ID: T1"


def test_missing_identifier_is_an_error_and_not_a_duplicate():
    clients = load_clients([{"ClientName": "a"}, {"ClientID": "  "}, {"ClientID": "C1"}])

    diagnostics = validate_clients(clients, TASKS)

    assert _ids(diagnostics) == ["client-missing-id-0", "client-missing-id-1"]


def test_client_range_and_format_checks():
    clients = load_clients(
        [
            {"ClientID": "C1", "PriorityLevel": 0},
            {"ClientID": "C2", "PriorityLevel": "6"},
            {"ClientID": "C3", "PriorityLevel": "high"},
            {"ClientID": "C4", "PriorityLevel": ""},
            {"ClientID": "C5", "PriorityLevel": 5, "AttributesJSON": '{"location": "NY"}'},
            {"ClientID": "C6", "AttributesJSON": "{not json"},
            {"ClientID": "C7", "AttributesJSON": "NaN"},
        ]
    )

    diagnostics = validate_clients(clients, TASKS)

    assert _ids(diagnostics) == [
        "client-priority-0",
        "client-priority-1",
        "client-priority-2",
        "client-json-5",
        "client-json-6",
    ]
    assert diagnostics[2].message == "Priority level must be between 1-5, got: high"


def test_client_checks_follow_fixed_order_within_a_record():
    clients = load_clients(
        [
            {"ClientID": "C1"},
            {
                "ClientID": "C1",
                "PriorityLevel": 9,
                "AttributesJSON": "[",
                "RequestedTaskIDs": " T2 , X1,,X2",
            },
        ]
    )

    diagnostics = validate_clients(clients, TASKS)

    assert _ids(diagnostics) == [
        "client-duplicate-1",
        "client-priority-1",
        "client-json-1",
        "client-unknown-task-1-X1",
        "client-unknown-task-1-X2",
    ]


def test_worker_checks():
    workers = load_workers(
        [
            {"WorkerID": "W1", "MaxLoadPerPhase": 0, "QualificationLevel": 11},
            {"WorkerID": "W2", "MaxLoadPerPhase": 2, "QualificationLevel": 0},
            {"WorkerID": "W3", "AvailableSlots": "not json"},
            {"WorkerID": "W4", "AvailableSlots": "{}"},
            {"WorkerID": "W5", "AvailableSlots": "[1, true]"},
            {"WorkerID": "W6", "AvailableSlots": "[1.5]"},
            {"WorkerID": "W7", "AvailableSlots": "[]", "MaxLoadPerPhase": "3", "QualificationLevel": 10},
        ]
    )

    diagnostics = validate_workers(workers)

    assert _ids(diagnostics) == [
        "worker-load-0",
        "worker-qualification-0",
        "worker-qualification-1",
        "worker-slots-format-2",
        "worker-slots-3",
        "worker-slots-4",
        "worker-slots-5",
    ]
    severities = {d.id: d.severity for d in diagnostics}
    assert severities["worker-load-0"] is Severity.ERROR
    assert severities["worker-qualification-0"] is Severity.WARNING
    assert severities["worker-slots-format-2"] is Severity.ERROR


def test_task_checks():
    tasks = load_tasks(
        [
            {"TaskID": "T1", "Duration": 0, "MaxConcurrent": "x", "RequiredSkills": "python,Go, sql"},
            {"TaskID": "T2", "Duration": 1, "MaxConcurrent": 1, "PreferredPhases": "[1,2,3]"},
            {"TaskID": "T3", "PreferredPhases": "[1, 2]"},
        ]
    )

    diagnostics = validate_tasks(tasks, WORKERS)

    assert _ids(diagnostics) == [
        "task-duration-0",
        "task-concurrent-0",
        "task-skill-coverage-0-go",
        "task-phases-format-2",
    ]
    coverage = diagnostics[2]
    assert coverage.severity is Severity.WARNING
    assert coverage.message == "Required skill 'go' not available in any worker"


def test_cross_references_only_flag_empty_collections():
    assert validate_cross_references(CLIENTS, WORKERS, TASKS) == []
    assert _ids(validate_cross_references(CLIENTS, (), TASKS)) == ["missing-workers"]


def test_orchestrator_concatenates_in_fixed_order():
    clients = load_clients([{"ClientID": "C1", "PriorityLevel": 7}])
    workers = load_workers([{"WorkerID": "W1", "MaxLoadPerPhase": 0}])
    tasks = load_tasks([{"TaskID": "T1", "Duration": 0}])

    assert _ids(validate(clients, workers, tasks)) == [
        "client-priority-0",
        "worker-load-0",
        "task-duration-0",
    ]


def test_validation_is_deterministic_and_does_not_mutate_input():
    clients = [{"ClientID": "C1", "RequestedTaskIDs": "T9"}, {"ClientID": "C1"}]
    workers = [{"WorkerID": "W1", "AvailableSlots": "[0]"}]
    tasks = [{"TaskID": "T1", "RequiredSkills": "rust", "PreferredPhases": "soon"}]
    snapshot = copy.deepcopy((clients, workers, tasks))

    first = validate(load_clients(clients), load_workers(workers), load_tasks(tasks))
    second = validate(load_clients(clients), load_workers(workers), load_tasks(tasks))

    assert [d.model_dump_json() for d in first] == [d.model_dump_json() for d in second]
    assert (clients, workers, tasks) == snapshot


def test_diagnostics_carry_suggestions():
    [diag] = validate_tasks(load_tasks([{"TaskID": "T1", "PreferredPhases": "soon"}]), WORKERS)
    assert diag.suggestion


def test_helpers():
    assert split_list(" a, b ,,c ") == ["a", "b", "c"]
    assert split_list("") == []
    assert out_of_range(None, 1) is False
    assert out_of_range("abc", 1) is True
    assert out_of_range(0, 1) is True
    assert out_of_range(11, 1, 10) is True
    assert out_of_range(10, 1, 10) is False
    assert phases_recognized("2-4")
    assert phases_recognized("[3]")
    assert not phases_recognized("1-3\n")
    assert not phases_recognized("[1,]")


def test_repeated_tokens_in_one_cell_get_distinct_ids():
    clients = load_clients([{"ClientID": "C1", "RequestedTaskIDs": "T9,T9,T9-2"}])
    tasks = load_tasks([{"TaskID": "T1", "RequiredSkills": "Rust, rust"}])

    client_ids = _ids(validate_clients(clients, TASKS))
    task_ids = _ids(validate_tasks(tasks, WORKERS))

    assert client_ids == [
        "client-unknown-task-0-T9",
        "client-unknown-task-0-T9-2",
        "client-unknown-task-0-T9-2-2",
    ]
    assert task_ids == ["task-skill-coverage-0-rust", "task-skill-coverage-0-rust-2"]
    all_ids = _ids(validate(clients, WORKERS, tasks))
    assert len(set(all_ids)) == len(all_ids)


def test_unique_token():
    used = set()
    assert unique_token("a", used) == "a"
    assert unique_token("a", used) == "a-2"
    assert unique_token("a", used) == "a-3"
    assert unique_token("b", used) == "b"
