"""
tests/test_admin_api.py — Admin exam and credential endpoints
=============================================================

Exercises the admin HTTP surface with the session-scoped admin token.
"""
from __future__ import annotations

import re
from pathlib import Path

from fastapi.testclient import TestClient

from exam_portal import exams
from exam_portal.config import settings
from exam_portal.main import app

client = TestClient(app)


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _create_exam(token: str, name: str) -> int:
    resp = client.post("/admin/exams", json={"name": name, "date": "2026-11-02"}, headers=_headers(token))
    assert resp.status_code == 200, resp.text
    return resp.json()["id"]


# ---------------------------------------------------------------------------
# Auth guard
# ---------------------------------------------------------------------------

def test_requires_login():
    resp = client.get("/admin/exams/list")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Not logged in."}


def test_unknown_route_uses_error_body(admin_token):
    resp = client.get("/admin/no-such-page", headers=_headers(admin_token))
    assert resp.status_code == 404
    assert set(resp.json()) == {"error"}


# ---------------------------------------------------------------------------
# Exams
# ---------------------------------------------------------------------------

def test_create_and_list_exam(admin_token):
    exam_id = _create_exam(admin_token, "API exam")
    listed = client.get("/admin/exams/list", headers=_headers(admin_token)).json()
    row = next(e for e in listed if e["id"] == exam_id)
    assert row["name"] == "API exam"
    assert row["date"] == "2026-11-02"
    assert row["is_active"] is False


def test_create_exam_requires_name(admin_token):
    resp = client.post("/admin/exams", json={"name": ""}, headers=_headers(admin_token))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Exam name is required."}


def test_activate_exam(admin_token):
    first = _create_exam(admin_token, "API activate A")
    second = _create_exam(admin_token, "API activate B")

    assert client.post(f"/admin/exams/{first}/activate", headers=_headers(admin_token)).status_code == 200
    assert client.post(f"/admin/exams/{second}/activate", headers=_headers(admin_token)).status_code == 200

    dashboard = client.get("/admin/dashboard-data", headers=_headers(admin_token)).json()
    assert dashboard["activeExam"]["id"] == second
    assert dashboard["adminUsername"] == "admin"
    assert [s["id"] for s in dashboard["stats"] if s["is_active"]] == [second]


def test_activate_unknown_exam(admin_token):
    resp = client.post("/admin/exams/999999/activate", headers=_headers(admin_token))
    assert resp.status_code == 404


def test_update_exam(admin_token):
    exam_id = _create_exam(admin_token, "API update")
    resp = client.put(
        f"/admin/exams/{exam_id}",
        json={"name": "API updated", "date": None, "is_active": True},
        headers=_headers(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["is_active"] is True
    assert exams.get_active().id == exam_id


def test_delete_exam(admin_token):
    exam_id = _create_exam(admin_token, "API delete")
    client.post(
        "/admin/credentials/generate",
        json={"examId": exam_id, "count": 2},
        headers=_headers(admin_token),
    )
    assert client.delete(f"/admin/exams/{exam_id}", headers=_headers(admin_token)).status_code == 200
    listing = client.get(f"/admin/credentials/list/{exam_id}", headers=_headers(admin_token)).json()
    assert listing["total"] == 0


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

def test_generate_credentials(admin_token):
    exam_id = _create_exam(admin_token, "API generate")
    resp = client.post(
        "/admin/credentials/generate",
        json={"examId": exam_id, "count": 3},
        headers=_headers(admin_token),
    )
    assert resp.status_code == 200
    generated = resp.json()["generated"]
    assert [g["username"] for g in generated] == [f"EXAM{exam_id:02d}{i:03d}" for i in (1, 2, 3)]
    assert all(re.match(r"^[A-Z2-9]{4}-[A-Z2-9]{4}$", g["password"]) for g in generated)

    listing = client.get(f"/admin/credentials/list/{exam_id}", headers=_headers(admin_token)).json()
    assert listing["total"] == 3
    assert listing["used"] == 0


def test_generate_rejects_bad_count(admin_token):
    exam_id = _create_exam(admin_token, "API generate bad")
    resp = client.post(
        "/admin/credentials/generate",
        json={"examId": exam_id, "count": 101},
        headers=_headers(admin_token),
    )
    assert resp.status_code == 400


def test_manual_credential_conflict(admin_token):
    exam_id = _create_exam(admin_token, "API manual")
    body = {"examId": exam_id, "username": "api-manual", "password": "ABCD-EFGH", "examineeName": "Pat"}
    first = client.post("/admin/credentials", json=body, headers=_headers(admin_token))
    assert first.status_code == 200
    assert first.json()["username"] == "API-MANUAL"

    second = client.post("/admin/credentials", json={**body, "username": "API-MANUAL"}, headers=_headers(admin_token))
    assert second.status_code == 409
    assert second.json() == {"error": "Username already exists."}


def test_reset_rename_and_delete_credential(admin_token):
    exam_id = _create_exam(admin_token, "API lifecycle")
    client.post(f"/admin/exams/{exam_id}/activate", headers=_headers(admin_token))
    created = client.post(
        "/admin/credentials",
        json={"examId": exam_id, "username": "API-LIFE", "password": "ABCD-EFGH"},
        headers=_headers(admin_token),
    ).json()
    cred_id = created["id"]

    assert client.post("/login", json={"username": "api-life", "password": "ABCD-EFGH"}).status_code == 200
    assert client.post("/login", json={"username": "api-life", "password": "ABCD-EFGH"}).status_code == 401

    assert client.post(f"/admin/credentials/{cred_id}/reset", headers=_headers(admin_token)).status_code == 200
    assert client.post("/login", json={"username": "api-life", "password": "ABCD-EFGH"}).status_code == 200

    resp = client.put(f"/admin/credentials/{cred_id}", json={"examineeName": "Lee"}, headers=_headers(admin_token))
    assert resp.status_code == 200
    listing = client.get(f"/admin/credentials/list/{exam_id}", headers=_headers(admin_token)).json()
    assert listing["credentials"][0]["examinee_name"] == "Lee"
    assert listing["used"] == 1

    assert client.delete(f"/admin/credentials/{cred_id}", headers=_headers(admin_token)).status_code == 200
    assert client.delete(f"/admin/credentials/{cred_id}", headers=_headers(admin_token)).status_code == 404


def test_delete_credentials_by_exam(admin_token):
    exam_id = _create_exam(admin_token, "API bulk delete")
    client.post(
        "/admin/credentials/generate",
        json={"examId": exam_id, "count": 4},
        headers=_headers(admin_token),
    )
    resp = client.delete(f"/admin/credentials/exam/{exam_id}", headers=_headers(admin_token))
    assert resp.status_code == 200
    assert resp.json()["message"] == "Deleted 4 credentials."


# ---------------------------------------------------------------------------
# Exam materials
# ---------------------------------------------------------------------------

def _register_file(token: str, exam_id: int, **extra) -> dict:
    body = {"examId": exam_id, "contentRef": "https://cdn.example.com/paper.pdf", "fileType": "pdf"}
    body.update(extra)
    resp = client.post("/admin/files", json=body, headers=_headers(token))
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_register_and_list_files(admin_token):
    exam_id = _create_exam(admin_token, "API files")
    first = _register_file(admin_token, exam_id, displayName="Part A")
    second = _register_file(
        admin_token, exam_id, contentRef="figures/fig1.png", fileType="image",
    )

    assert first["display_name"] == "Part A"
    assert first["sort_order"] == 1
    assert second["filename"] == "fig1.png"
    assert second["display_name"] == "fig1.png"
    assert second["sort_order"] == 2

    listed = client.get(f"/admin/files/list/{exam_id}", headers=_headers(admin_token)).json()
    assert [f["id"] for f in listed] == [first["id"], second["id"]]


def test_register_file_validation(admin_token):
    exam_id = _create_exam(admin_token, "API files invalid")
    resp = client.post(
        "/admin/files",
        json={"examId": exam_id, "contentRef": "a.docx", "fileType": "docx"},
        headers=_headers(admin_token),
    )
    assert resp.status_code == 400

    resp = client.post(
        "/admin/files",
        json={"examId": 999_999, "contentRef": "a.pdf", "fileType": "pdf"},
        headers=_headers(admin_token),
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Exam not found."}


def test_rename_and_reorder_file(admin_token):
    exam_id = _create_exam(admin_token, "API files reorder")
    first = _register_file(admin_token, exam_id, displayName="First")
    second = _register_file(admin_token, exam_id, displayName="Second")

    resp = client.put(
        f"/admin/files/{second['id']}",
        json={"displayName": "Now first", "sortOrder": 0},
        headers=_headers(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["display_name"] == "Now first"

    listed = client.get(f"/admin/files/list/{exam_id}", headers=_headers(admin_token)).json()
    assert [f["id"] for f in listed] == [second["id"], first["id"]]

    missing = client.put("/admin/files/999999", json={"displayName": "x"}, headers=_headers(admin_token))
    assert missing.status_code == 404


def test_delete_file_removes_local_content(admin_token):
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    content = upload_dir / "api-delete.pdf"
    content.write_bytes(b"%PDF")

    exam_id = _create_exam(admin_token, "API files delete")
    row = _register_file(admin_token, exam_id, contentRef="api-delete.pdf")

    resp = client.delete(f"/admin/files/{row['id']}", headers=_headers(admin_token))
    assert resp.status_code == 200
    assert not content.exists()
    assert client.get(f"/admin/files/list/{exam_id}", headers=_headers(admin_token)).json() == []
    assert client.delete(f"/admin/files/{row['id']}", headers=_headers(admin_token)).status_code == 404


def test_file_routes_require_admin():
    assert client.get("/admin/files/list/1").status_code == 401
    assert client.post("/admin/files", json={}).status_code == 401
