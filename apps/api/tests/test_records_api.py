"""API tests for the records routers: auth, role gates and error mapping."""
import io
import uuid

import pytest
from httpx import AsyncClient
from openpyxl import Workbook

from lien_recovery.db.enums import CommentStatus
from lien_recovery.schemas.comment import CommentCreate
from lien_recovery.services import comment_service

from conftest import as_actor


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient):
    response = await client.get("/records")
    assert response.status_code == 401

    response = await client.get("/records", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_revoked_token_rejected(client: AsyncClient, db, auth, admin):
    headers = auth.for_user(admin)
    admin.token_version += 1
    db.commit()

    response = await client.get("/records", headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_record_admin_only(client: AsyncClient, auth, admin, collector):
    payload = {"provider": "Acme Clinic", "pt_name": "Jane Roe", "bill": "300", "paid": "100"}

    response = await client.post("/records", json=payload, headers=auth.for_user(collector))
    assert response.status_code == 403

    response = await client.post("/records", json=payload, headers=auth.for_user(admin))
    assert response.status_code == 201
    data = response.json()
    assert data["reference_id"] == "REF-0000001"
    assert float(data["outstanding"]) == 200
    assert data["comments"] == []


@pytest.mark.asyncio
async def test_error_mapping(client: AsyncClient, auth, admin):
    headers = auth.for_user(admin)

    response = await client.get("/records/not-a-uuid", headers=headers)
    assert response.status_code == 400

    response = await client.get(f"/records/{uuid.uuid4()}", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_provider_access(client: AsyncClient, auth, make_record, provider_user):
    own = make_record("acme clinic", "Mine")
    other = make_record("Other Clinic", "Theirs")
    headers = auth.for_user(provider_user)

    response = await client.get("/records", headers=headers)
    assert [item["pt_name"] for item in response.json()["items"]] == ["Mine"]

    assert (await client.get(f"/records/{own.id}", headers=headers)).status_code == 200
    assert (await client.get(f"/records/{other.id}", headers=headers)).status_code == 403

    response = await client.patch(
        f"/records/{other.id}/assign", json={"collector_id": "unassigned"}, headers=headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_provider_assigns_own_record(client: AsyncClient, auth, make_record, provider_user, collector):
    record = make_record()

    response = await client.patch(
        f"/records/{record.id}/assign",
        json={"collector_id": str(collector.id)},
        headers=auth.for_user(provider_user),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["assigned_collector"]["id"] == str(collector.id)
    assert data["assignment_history"][0]["assigned_by"]["username"] == provider_user.username


@pytest.mark.asyncio
async def test_comment_flow(client: AsyncClient, auth, make_record, admin, collector):
    record = make_record(assigned_collector_id=collector.id)
    headers = auth.for_user(collector)

    response = await client.post(
        f"/records/{record.id}/comments",
        json={"text": "Left voicemail", "status": "lvm", "scheduled_date": "2024-06-04", "scheduled_time": "10:00"},
        headers=headers,
    )
    assert response.status_code == 201
    comment_id = response.json()["comments"][0]["id"]

    response = await client.post(
        f"/records/{record.id}/comments",
        json={"text": "Closing", "status": "closed"},
        headers=headers,
    )
    assert response.status_code == 403

    response = await client.patch(
        f"/records/{record.id}/comments/{comment_id}",
        json={"is_completed": True},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["comments"][0]["is_completed"] is True

    response = await client.post(
        f"/records/{record.id}/comments",
        json={"text": "Bad time", "status": "callback", "scheduled_date": "2024-06-04", "scheduled_time": "25:00"},
        headers=headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_collector_timeline_hides_payments(client: AsyncClient, db, auth, make_record, collector, redeemer):
    record = make_record(assigned_collector_id=collector.id)
    comment_service.add_comment(
        db,
        record.id,
        CommentCreate(
            text="Check arrived",
            status=CommentStatus.PAYMENT_RECEIVED,
            check_number="1",
            check_date="2024-06-01",
            check_amount="10",
            check_copy={"file_name": "c.pdf", "mime_type": "application/pdf", "base64": "QQ=="},
        ),
        as_actor(redeemer),
    )

    response = await client.get(f"/records/{record.id}", headers=auth.for_user(collector))
    assert response.status_code == 200
    assert response.json()["comments"] == []

    response = await client.get(f"/records/{record.id}", headers=auth.for_user(redeemer))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_only_endpoints(client: AsyncClient, auth, admin, collector):
    for method, path, body in [
        ("GET", "/records/overdue-events", None),
        ("GET", "/records/duplicates", None),
        ("GET", "/records/assignments/summary", None),
        ("PATCH", "/records/reassign-many", {"record_ids": [str(uuid.uuid4())], "collector_id": "unassigned"}),
        ("POST", "/records/delete-many", {"record_ids": [str(uuid.uuid4())]}),
    ]:
        denied = await client.request(method, path, json=body, headers=auth.for_user(collector))
        assert denied.status_code == 403, path
        allowed = await client.request(method, path, json=body, headers=auth.for_user(admin))
        assert allowed.status_code == 200, path


@pytest.mark.asyncio
async def test_bulk_endpoints(client: AsyncClient, auth, make_record, admin, collector):
    first, second = make_record(pt_name="First"), make_record(pt_name="Second")
    headers = auth.for_user(admin)

    response = await client.patch(
        "/records/reassign-many",
        json={"record_ids": [str(first.id), str(second.id)], "collector_id": str(collector.id)},
        headers=headers,
    )
    assert response.json() == {"modified_count": 2, "deleted_count": 0}

    response = await client.post(
        "/records/delete-many", json={"record_ids": [str(first.id), "bogus"]}, headers=headers
    )
    assert response.status_code == 400

    response = await client.post(
        "/records/delete-many", json={"record_ids": [str(first.id)]}, headers=headers
    )
    assert response.json()["deleted_count"] == 1


@pytest.mark.asyncio
async def test_merge_endpoint(client: AsyncClient, auth, make_record, admin):
    primary = make_record(adj_number=[{"value": "ADJ1"}])
    duplicate = make_record(adj_number=[{"value": "ADJ1"}])

    duplicates = await client.get("/records/duplicates", headers=auth.for_user(admin))
    assert {item["id"] for item in duplicates.json()} == {str(primary.id), str(duplicate.id)}

    response = await client.post(
        "/records/duplicates/merge-group",
        json={"primary_id": str(primary.id), "duplicate_ids": [str(duplicate.id)]},
        headers=auth.for_user(admin),
    )
    assert response.status_code == 200
    assert response.json()["deleted_duplicates"] == 1


@pytest.mark.asyncio
async def test_summary_and_events_endpoints(client: AsyncClient, auth, make_record, collector, redeemer, hearing_rep):
    make_record(case_status="SETTLED", assigned_collector_id=collector.id)

    response = await client.get("/records/summary", headers=auth.for_user(collector))
    assert response.json()[0]["statuses"] == [{"status": "SETTLED", "count": 1}]

    response = await client.get("/records/summary", headers=auth.for_user(redeemer))
    assert response.status_code == 403

    for path in ("/records/scheduled-events", "/records/notifications", "/records/hearing-events"):
        response = await client.get(path, headers=auth.for_user(hearing_rep))
        assert response.status_code == 200, path


@pytest.mark.asyncio
async def test_upload(client: AsyncClient, auth, admin):
    headers = auth.for_user(admin)
    content = b"Provider,PT Name,Bill\nAcme Clinic,Jane Roe,$100\n"

    response = await client.post(
        "/records/upload",
        files={"file": ("records.csv", io.BytesIO(content), "text/csv")},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["created"] == 1

    response = await client.post(
        "/records/upload",
        files={"file": ("records.xlsx", io.BytesIO(content), "application/octet-stream")},
        headers=headers,
    )
    assert response.status_code == 400

    response = await client.post(
        "/records/upload",
        files={"file": ("latin1.csv", io.BytesIO("PT Name\nJosé\n".encode("latin-1")), "text/csv")},
        headers=headers,
    )
    assert response.status_code == 400

    response = await client.post(
        "/records/upload",
        files={"file": ("records.txt", io.BytesIO(content), "text/plain")},
        headers=headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_workbook(client: AsyncClient, auth, admin):
    workbook = Workbook()
    workbook.active.append(["Provider", "PT Name", "Bill"])
    workbook.active.append(["Acme Clinic", "Jane Roe", 100])
    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)

    response = await client.post(
        "/records/upload",
        files={"file": ("Records.XLSX", buffer, "application/octet-stream")},
        headers=auth.for_user(admin),
    )

    assert response.status_code == 200
    assert response.json()["created"] == 1
