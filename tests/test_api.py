"""Tests API / API tests."""

import pytest

from custody.api.deps import get_document_renderer, get_object_store
from custody.main import app
from custody.services.storage import LocalObjectStore, ObjectStoreError
from custody.utils.auth import create_access_token


def _broken_renderer(payload):
    raise RuntimeError("renderer crashed")


class _OfflineStore(LocalObjectStore):
    async def put(self, bucket, key, data, content_type, upsert=False):
        raise ObjectStoreError("store offline")


async def _create_courier(client, auth_headers, pin="1234", name="Casey Courier"):
    resp = await client.post("/api/users/", json={"full_name": name, "role": "COURIER", "pin": pin}, headers=auth_headers)
    assert resp.status_code == 201
    return resp.json()


async def _create_device(client, auth_headers, asset_tag, type="PDA", **fields):
    resp = await client.post("/api/devices/", json={"asset_tag": asset_tag, "type": type, **fields}, headers=auth_headers)
    assert resp.status_code == 201
    return resp.json()


def _handover_body(courier_id, device_ids, signature, pin="1234", **extra):
    return {
        "courier_id": courier_id,
        "device_ids": device_ids,
        "pin": pin,
        "signature": signature,
        "dispatcher_signature": signature,
        **extra,
    }


@pytest.mark.asyncio
async def test_root(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "running"
    assert "X-Request-ID" in resp.headers


# ─── Auth ───

@pytest.mark.asyncio
async def test_login_and_me(client, admin, admin_password):
    resp = await client.post("/api/auth/login", json={"email": admin.email, "password": admin_password})
    assert resp.status_code == 200
    tokens = resp.json()
    assert tokens["token_type"] == "bearer"

    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert resp.status_code == 200
    assert resp.json()["role"] == "ADMIN"

    resp = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_login_failure_is_audited(client, admin, auth_headers):
    resp = await client.post("/api/auth/login", json={"email": admin.email, "password": "wrong"})
    assert resp.status_code == 401

    resp = await client.get("/api/audit/", params={"action": "LOGIN_FAILED"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["total"] == 1


@pytest.mark.asyncio
async def test_requires_token(client):
    resp = await client.get("/api/devices/")
    assert resp.status_code in (401, 403)


# ─── Personnes / Persons ───

@pytest.mark.asyncio
async def test_create_courier_requires_four_digit_pin(client, auth_headers):
    resp = await client.post(
        "/api/users/", json={"full_name": "Casey", "role": "COURIER", "pin": "12345"}, headers=auth_headers
    )
    assert resp.status_code == 400
    resp = await client.post(
        "/api/users/", json={"full_name": "Casey", "role": "COURIER", "pin": "\u0661\u0662\u0663\u0664"}, headers=auth_headers
    )
    assert resp.status_code == 400

    courier = await _create_courier(client, auth_headers)
    assert courier["has_pin"] is True
    assert courier["role"] == "COURIER"


@pytest.mark.asyncio
async def test_create_admin_requires_credentials(client, auth_headers):
    resp = await client.post("/api/users/", json={"full_name": "Ops", "role": "ADMIN"}, headers=auth_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_pin_reset(client, auth_headers):
    courier = await _create_courier(client, auth_headers)
    resp = await client.patch(f"/api/users/{courier['id']}", json={"pin": "123"}, headers=auth_headers)
    assert resp.status_code == 400
    resp = await client.patch(f"/api/users/{courier['id']}", json={"pin": "\u0661\u0662\u0663\u0664"}, headers=auth_headers)
    assert resp.status_code == 400
    resp = await client.patch(f"/api/users/{courier['id']}", json={"pin": "654321"}, headers=auth_headers)
    assert resp.status_code == 200

    resp = await client.get("/api/audit/", params={"action": "PIN_RESET"}, headers=auth_headers)
    assert resp.json()["total"] == 1


# ─── Appareils / Devices ───

@pytest.mark.asyncio
async def test_device_crud(client, auth_headers):
    device = await _create_device(client, auth_headers, "A-100", sim_card_id="SIM-1")
    assert device["status"] == "AVAILABLE"
    assert device["current_holder_id"] is None

    resp = await client.post("/api/devices/", json={"asset_tag": "A-100", "type": "PDA"}, headers=auth_headers)
    assert resp.status_code == 409

    resp = await client.patch(f"/api/devices/{device['id']}", json={"description": "spare unit"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["description"] == "spare unit"

    resp = await client.get(f"/api/devices/{device['id']}/field-history", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()[0]["field"] == "description"

    resp = await client.get("/api/devices/", params={"status": "AVAILABLE"}, headers=auth_headers)
    assert [d["asset_tag"] for d in resp.json()] == ["A-100"]


@pytest.mark.asyncio
async def test_patch_damaged_without_note(client, auth_headers):
    device = await _create_device(client, auth_headers, "A-100")
    resp = await client.patch(f"/api/devices/{device['id']}", json={"is_damaged": True}, headers=auth_headers)
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_failed"


@pytest.mark.asyncio
async def test_patch_cannot_issue(client, auth_headers):
    device = await _create_device(client, auth_headers, "A-100")
    resp = await client.patch(f"/api/devices/{device['id']}", json={"status": "ISSUED"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_input"


@pytest.mark.asyncio
async def test_unknown_device_404(client, auth_headers):
    resp = await client.get("/api/devices/999", headers=auth_headers)
    assert resp.status_code == 404


# ─── Drapeaux / Flags ───

@pytest.mark.asyncio
async def test_flag_definition_frozen_once_used(client, auth_headers):
    resp = await client.post("/api/device-flags/definitions", json={"name": "Case included"}, headers=auth_headers)
    assert resp.status_code == 201
    flag = resp.json()
    device = await _create_device(client, auth_headers, "A-100")

    resp = await client.post(
        f"/api/device-flags/{device['id']}",
        json={"flags": [{"flag_id": flag["id"], "value": True, "note": "blue"}]},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()[0]["name"] == "Case included"

    resp = await client.put(f"/api/device-flags/definitions/{flag['id']}", json={"name": "Case"}, headers=auth_headers)
    assert resp.status_code == 409
    resp = await client.delete(f"/api/device-flags/definitions/{flag['id']}", headers=auth_headers)
    assert resp.status_code == 409

    resp = await client.get(f"/api/devices/{device['id']}", headers=auth_headers)
    assert resp.json()["flags"][0]["note"] == "blue"


@pytest.mark.asyncio
async def test_cleared_flag_definition_kept_for_history(client, auth_headers):
    resp = await client.post("/api/device-flags/definitions", json={"name": "Strap"}, headers=auth_headers)
    flag_id = resp.json()["id"]
    device = await _create_device(client, auth_headers, "A-100")
    url = f"/api/device-flags/{device['id']}"

    resp = await client.post(url, json={"flags": [{"flag_id": flag_id, "value": True}]}, headers=auth_headers)
    assert resp.status_code == 200
    resp = await client.post(url, json={"flags": []}, headers=auth_headers)
    assert resp.json() == []

    resp = await client.delete(f"/api/device-flags/definitions/{flag_id}", headers=auth_headers)
    assert resp.status_code == 409
    resp = await client.get(f"/api/devices/{device['id']}/flag-history", headers=auth_headers)
    assert len(resp.json()) == 2


@pytest.mark.asyncio
async def test_unused_flag_definition_can_be_deleted(client, auth_headers):
    resp = await client.post("/api/device-flags/definitions", json={"name": "Charger"}, headers=auth_headers)
    flag_id = resp.json()["id"]
    resp = await client.delete(f"/api/device-flags/definitions/{flag_id}", headers=auth_headers)
    assert resp.status_code == 204


# ─── Remise / Handover ───

@pytest.mark.asyncio
async def test_issue_and_return(client, auth_headers, signature):
    courier = await _create_courier(client, auth_headers)
    a100 = await _create_device(client, auth_headers, "A-100")
    a101 = await _create_device(client, auth_headers, "A-101", type="MOBILE_PRINTER")

    resp = await client.post(
        "/api/handover/issue",
        json=_handover_body(courier["id"], [a100["id"], a101["id"]], signature, notes="Morning shift"),
        headers=auth_headers,
    )
    assert resp.status_code == 201
    result = resp.json()
    assert result["status"] == "COMPLETED"
    assert result["device_count"] == 2

    resp = await client.get(f"/api/files/{result['document_reference']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")

    resp = await client.get(f"/api/devices/{a100['id']}", headers=auth_headers)
    detail = resp.json()
    assert detail["status"] == "ISSUED"
    assert detail["current_holder"]["id"] == courier["id"]

    resp = await client.get(f"/api/devices/{a100['id']}/history", headers=auth_headers)
    assert resp.json()[0]["to_person_id"] == courier["id"]

    resp = await client.post(
        "/api/handover/return",
        json=_handover_body(courier["id"], [a100["id"]], signature),
        headers=auth_headers,
    )
    assert resp.status_code == 201

    resp = await client.get("/api/handover/batches", params={"courier_id": courier["id"]}, headers=auth_headers)
    batches = resp.json()
    assert [b["action_type"] for b in batches] == ["RETURN", "ISSUE"]
    assert batches[0]["document_url"].endswith(".pdf")


@pytest.mark.asyncio
async def test_wrong_pin_generic_error(client, auth_headers, signature):
    courier = await _create_courier(client, auth_headers)
    device = await _create_device(client, auth_headers, "A-100")

    resp = await client.post(
        "/api/handover/issue",
        json=_handover_body(courier["id"], [device["id"]], signature, pin="9999"),
        headers=auth_headers,
    )
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Courier authentication failed", "code": "auth_failed"}

    resp = await client.post(
        "/api/handover/issue",
        json=_handover_body(9999, [device["id"]], signature),
        headers=auth_headers,
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Courier authentication failed"


@pytest.mark.asyncio
async def test_issue_unavailable_device(client, auth_headers, signature):
    courier = await _create_courier(client, auth_headers)
    device = await _create_device(client, auth_headers, "A-100")
    body = _handover_body(courier["id"], [device["id"]], signature)

    assert (await client.post("/api/handover/issue", json=body, headers=auth_headers)).status_code == 201
    resp = await client.post("/api/handover/issue", json=body, headers=auth_headers)
    assert resp.status_code == 409
    assert resp.json()["code"] == "precondition_failed"
    assert resp.json()["asset_tags"] == ["A-100"]


@pytest.mark.asyncio
async def test_issue_missing_fields(client, auth_headers, signature):
    resp = await client.post("/api/handover/issue", json={"device_ids": [1]}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_input"


@pytest.mark.asyncio
async def test_issue_damaged_without_note(client, auth_headers, signature):
    courier = await _create_courier(client, auth_headers)
    device = await _create_device(client, auth_headers, "A-100")
    body = _handover_body(
        courier["id"], [device["id"]], signature,
        device_updates=[{"id": device["id"], "is_damaged": True}],
    )
    resp = await client.post("/api/handover/issue", json=body, headers=auth_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_document_pending_then_regenerate(client, auth_headers, signature):
    courier = await _create_courier(client, auth_headers)
    device = await _create_device(client, auth_headers, "A-100")

    app.dependency_overrides[get_document_renderer] = lambda: _broken_renderer
    resp = await client.post(
        "/api/handover/issue",
        json=_handover_body(courier["id"], [device["id"]], signature),
        headers=auth_headers,
    )
    del app.dependency_overrides[get_document_renderer]

    assert resp.status_code == 202
    pending = resp.json()
    assert pending["status"] == "DOCUMENT_PENDING"
    assert pending["document_reference"] is None

    resp = await client.get("/api/handover/batches", params={"missing_document": True}, headers=auth_headers)
    assert [b["id"] for b in resp.json()] == [pending["batch_id"]]

    resp = await client.post(f"/api/handover/batches/{pending['batch_id']}/document", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"

    resp = await client.get(f"/api/handover/batches/{pending['batch_id']}", headers=auth_headers)
    assert resp.json()["document_path"] == resp.json()["document_url"].split("/api/files/")[1]


@pytest.mark.asyncio
async def test_courier_token_cannot_dispatch(client, auth_headers, signature):
    courier = await _create_courier(client, auth_headers)
    headers = {"Authorization": f"Bearer {create_access_token(courier['id'])}"}
    resp = await client.post("/api/handover/issue", json=_handover_body(courier["id"], [1], signature), headers=headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_signature_storage_down_returns_503(client, auth_headers, signature, tmp_path):
    courier = await _create_courier(client, auth_headers)
    device = await _create_device(client, auth_headers, "A-100")

    app.dependency_overrides[get_object_store] = lambda: _OfflineStore(tmp_path / "offline", "http://test")
    resp = await client.post(
        "/api/handover/issue",
        json=_handover_body(courier["id"], [device["id"]], signature),
        headers=auth_headers,
    )
    assert resp.status_code == 503
    assert resp.json()["code"] == "storage_failure"

    resp = await client.get(f"/api/devices/{device['id']}", headers=auth_headers)
    assert resp.json()["status"] == "AVAILABLE"
    resp = await client.get("/api/handover/batches", headers=auth_headers)
    assert resp.json() == []
