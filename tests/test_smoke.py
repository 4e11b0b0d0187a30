import io
import zipfile

from fastapi.testclient import TestClient
from alchemist import main
from alchemist.main import app

client = TestClient(app)


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_decode_latin1_csv_keeps_unknown_columns():
    # Include a Latin-1 character to force non-ASCII handling
    raw = "name,city\nPaul,Montréal\n".encode("latin-1")

    files = {"file": ("clients.csv", raw, "text/csv")}
    r = client.post("/decode", files=files)
    assert r.status_code == 200

    data = r.json()
    assert data["kind"] == "clients"
    assert data["rows"] == [{"ClientName": "Paul", "city": "Montréal"}]
    assert data["report"]["source_format"] == "csv"
    assert data["report"]["headers"] == [
        {"source": "name", "field": "ClientName", "mapped": True},
        {"source": "city", "field": "city", "mapped": False},
    ]


def test_decode_kind_from_query_overrides_filename():
    raw = b"id,skills\nW1,python\n"
    files = {"file": ("upload.csv", raw, "text/csv")}
    r = client.post("/decode", params={"kind": "workers"}, files=files)
    assert r.status_code == 200
    assert r.json()["rows"] == [{"WorkerID": "W1", "Skills": "python"}]


def test_decode_kind_inferred_from_filename():
    raw = b"id,skills\nT1,python\n"
    files = {"file": ("my_tasks.csv", raw, "text/csv")}
    r = client.post("/decode", files=files)
    assert r.status_code == 200
    assert r.json()["kind"] == "tasks"
    assert r.json()["rows"] == [{"TaskID": "T1", "RequiredSkills": "python"}]


def test_decode_rejects_unsupported_extension():
    files = {"file": ("clients.txt", b"id\nC1\n", "text/plain")}
    r = client.post("/decode", files=files)
    assert r.status_code == 422


def test_decode_rejects_unreadable_workbook():
    files = {"file": ("clients.xlsx", b"definitely not a zip", "application/octet-stream")}
    r = client.post("/decode", files=files)
    assert r.status_code == 422


def test_decode_rejects_oversized_upload(monkeypatch):
    monkeypatch.setattr(main.settings, "max_file_size", 8)
    files = {"file": ("clients.csv", b"id\nC1\nC2\nC3\n", "text/csv")}
    r = client.post("/decode", files=files)
    assert r.status_code == 413


def test_validate_reports_unknown_task():
    payload = {
        "clients": [{"ClientID": "C1", "PriorityLevel": 3, "RequestedTaskIDs": "T1,T9"}],
        "workers": [{"WorkerID": "W1", "Skills": "python"}],
        "tasks": [{"TaskID": "T1"}],
    }
    r = client.post("/validate", json=payload)
    assert r.status_code == 200

    data = r.json()
    assert data["summary"]["errors"] == 1
    assert data["summary"]["warnings"] == 0
    assert data["truncated"] is False
    [diag] = data["diagnostics"]
    assert diag["id"] == "client-unknown-task-0-T9"
    assert diag["severity"] == "error"
    assert diag["entity"] == "clients"
    assert diag["row_index"] == 0
    assert diag["field"] == "RequestedTaskIDs"
    assert diag["message"] == "Unknown task ID referenced: T9"


def test_validate_empty_payload():
    r = client.post("/validate", json={})
    assert r.status_code == 200
    ids = [d["id"] for d in r.json()["diagnostics"]]
    assert ids == ["missing-clients", "missing-workers", "missing-tasks"]


def test_validate_truncates_to_configured_maximum(monkeypatch):
    monkeypatch.setattr(main.settings, "max_validation_errors", 2)
    r = client.post("/validate", json={})
    data = r.json()
    assert data["summary"]["total"] == 3
    assert len(data["diagnostics"]) == 2
    assert data["truncated"] is True


def test_validate_rejects_non_list_collection():
    r = client.post("/validate", json={"clients": "C1,C2"})
    assert r.status_code == 422


def test_checks_catalog():
    r = client.get("/checks")
    assert r.status_code == 200
    by_check = {entry["check"]: entry for entry in r.json()}
    assert by_check["qualification"]["severity"] == "warning"
    assert by_check["duplicate"]["severity"] == "error"


def test_rule_types_and_presets():
    assert "coRun" in client.get("/rules/types").json()
    presets = client.get("/priorities/presets").json()
    assert presets["fair-distribution"]["weights"]["Load Balance"] == 0.35


def test_export_package():
    payload = {
        "clients": [{"ClientID": "C1", "ClientName": "Acme, Inc", "PriorityLevel": 2}],
        "workers": [{"WorkerID": "W1", "Skills": "python"}],
        "tasks": [{"TaskID": "T1", "Duration": 2}],
        "rules": [
            {"id": "r1", "type": "coRun", "name": "Pair", "parameters": {"tasks": ["T1", "T2"]}},
            {"id": "r2", "type": "loadLimit", "name": "Off", "enabled": False},
        ],
    }
    r = client.post("/export", json=payload)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/zip"

    with zipfile.ZipFile(io.BytesIO(r.content)) as archive:
        assert sorted(archive.namelist()) == [
            "clients_cleaned.csv",
            "rules_config.json",
            "tasks_cleaned.csv",
            "validation_report.json",
            "workers_cleaned.csv",
        ]
        clients_csv = archive.read("clients_cleaned.csv").decode("utf-8-sig")
        assert '"Acme, Inc"' in clients_csv


def test_export_rejects_bad_priority_weight():
    r = client.post("/export", json={"priorities": {"Skill Match": 1.5}})
    assert r.status_code == 422


def test_decode_accepts_very_large_cells():
    blob = "x" * 200_000
    raw = f"ClientID,AttributesJSON\nC1,{blob}\n".encode("utf-8")
    files = {"file": ("clients.csv", raw, "text/csv")}
    r = client.post("/decode", files=files)
    assert r.status_code == 200
    assert r.json()["rows"][0]["AttributesJSON"] == blob


def test_decode_skips_leading_blank_lines():
    files = {"file": ("clients.csv", b"\nClientID,PriorityLevel\nC1,3\n", "text/csv")}
    r = client.post("/decode", files=files)
    assert r.status_code == 200
    assert r.json()["rows"] == [{"ClientID": "C1", "PriorityLevel": "3"}]
    assert r.json()["report"]["errors"] == []
