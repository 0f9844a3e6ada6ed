"""Tests for the public WhatsApp webhook endpoints."""

import json
from dataclasses import replace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.config import settings
from app.services.inbox.signature import SIGNATURE_HEADER, compute_signature
from app.tasks import webhooks as webhook_tasks
from app.web.public import webhooks as webhooks_module
from tests.helpers import text_message, whatsapp_payload

VERIFY_TOKEN = "verify-me"
APP_SECRET = "app-secret"


@pytest.fixture()
def calls(monkeypatch):
    recorded = {"enqueued": [], "in_process": []}

    def fake_delay(payload, trace_id=None):
        recorded["enqueued"].append((payload, trace_id))

    def fake_run(payload, trace_id=None):
        recorded["in_process"].append((payload, trace_id))

    monkeypatch.setattr(webhook_tasks.process_whatsapp_payload, "delay", fake_delay)
    monkeypatch.setattr(webhook_tasks, "run_ingestion_safely", fake_run)
    return recorded


def _client(monkeypatch, **overrides):
    values = {"whatsapp_verify_token": VERIFY_TOKEN, "whatsapp_app_secret": None, "inbound_dispatch": "celery"}
    values.update(overrides)
    monkeypatch.setattr(webhooks_module, "settings", replace(settings, **values))
    app = FastAPI()
    app.include_router(webhooks_module.router)
    return TestClient(app)


# ============================================================================
# Subscription challenge
# ============================================================================


def test_verify_echoes_challenge(monkeypatch):
    client = _client(monkeypatch)

    response = client.get(
        "/webhooks/whatsapp",
        params={"hub.mode": "subscribe", "hub.verify_token": VERIFY_TOKEN, "hub.challenge": "1158201444"},
    )

    assert response.status_code == 200
    assert response.text == "1158201444"


def test_verify_rejects_wrong_token(monkeypatch):
    client = _client(monkeypatch)

    response = client.get(
        "/webhooks/whatsapp",
        params={"hub.mode": "subscribe", "hub.verify_token": "guess", "hub.challenge": "1"},
    )

    assert response.status_code == 403


def test_verify_rejects_when_no_token_configured(monkeypatch):
    client = _client(monkeypatch, whatsapp_verify_token=None)

    response = client.get(
        "/webhooks/whatsapp",
        params={"hub.mode": "subscribe", "hub.verify_token": "anything", "hub.challenge": "1"},
    )

    assert response.status_code == 403


# ============================================================================
# Deliveries
# ============================================================================


def test_delivery_is_acknowledged_and_enqueued(monkeypatch, calls):
    client = _client(monkeypatch)
    payload = whatsapp_payload([text_message("wamid.R1", "hello")])

    response = client.post("/webhooks/whatsapp", json=payload)

    assert response.status_code == 200
    assert response.json() == {"status": "success"}
    [(enqueued, trace_id)] = calls["enqueued"]
    assert enqueued == payload
    assert trace_id
    assert calls["in_process"] == []


def test_invalid_json_is_rejected(monkeypatch, calls):
    client = _client(monkeypatch)

    response = client.post(
        "/webhooks/whatsapp",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert calls["enqueued"] == []


def test_non_object_json_is_rejected(monkeypatch, calls):
    client = _client(monkeypatch)

    response = client.post("/webhooks/whatsapp", json=[1, 2, 3])

    assert response.status_code == 400
    assert calls["enqueued"] == []


def test_unrecognized_object_is_still_acknowledged(monkeypatch, calls):
    client = _client(monkeypatch)

    response = client.post("/webhooks/whatsapp", json={"object": "page", "entry": []})

    assert response.status_code == 200
    assert response.json() == {"status": "success"}


def test_background_dispatch_runs_in_process(monkeypatch, calls):
    client = _client(monkeypatch, inbound_dispatch="background")
    payload = whatsapp_payload([text_message("wamid.R2", "hello")])

    response = client.post("/webhooks/whatsapp", json=payload)

    assert response.status_code == 200
    assert calls["enqueued"] == []
    assert [p for p, _ in calls["in_process"]] == [payload]


def test_enqueue_failure_falls_back_to_in_process(monkeypatch, calls):
    client = _client(monkeypatch)

    def broken_delay(payload, trace_id=None):
        raise ConnectionError("broker unavailable")

    monkeypatch.setattr(webhook_tasks.process_whatsapp_payload, "delay", broken_delay)
    payload = whatsapp_payload([text_message("wamid.R3", "hello")])

    response = client.post("/webhooks/whatsapp", json=payload)

    assert response.status_code == 200
    assert [p for p, _ in calls["in_process"]] == [payload]


# ============================================================================
# Signatures
# ============================================================================


def test_valid_signature_is_accepted(monkeypatch, calls):
    client = _client(monkeypatch, whatsapp_app_secret=APP_SECRET)
    body = json.dumps(whatsapp_payload([text_message("wamid.S1", "hello")])).encode()

    response = client.post(
        "/webhooks/whatsapp",
        content=body,
        headers={"content-type": "application/json", SIGNATURE_HEADER: compute_signature(body, APP_SECRET)},
    )

    assert response.status_code == 200
    assert len(calls["enqueued"]) == 1


def test_bad_signature_is_rejected(monkeypatch, calls):
    client = _client(monkeypatch, whatsapp_app_secret=APP_SECRET)
    body = json.dumps(whatsapp_payload([text_message("wamid.S2", "hello")])).encode()

    response = client.post(
        "/webhooks/whatsapp",
        content=body,
        headers={"content-type": "application/json", SIGNATURE_HEADER: compute_signature(body, "other-secret")},
    )

    assert response.status_code == 401
    assert calls["enqueued"] == []


def test_missing_signature_is_rejected(monkeypatch, calls):
    client = _client(monkeypatch, whatsapp_app_secret=APP_SECRET)

    response = client.post("/webhooks/whatsapp", json={"object": "whatsapp_business_account", "entry": []})

    assert response.status_code == 401
