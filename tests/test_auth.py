import json
import time

import jwt
import pytest
from fastapi.testclient import TestClient

from conftest import API_KEY, JWT_SECRET, SIGNING_SECRET
from workout_timer.auth import TokenVerifier, load_api_keys
from workout_timer.domain.errors import BadRequest
from workout_timer.http_server import create_app
from workout_timer.webhooks import sign_payload, verify_webhook


def make_token(sub="user_jwt", secret=JWT_SECRET, **claims):
    payload = {"sub": sub, "exp": int(time.time()) + 300, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def signed_headers(body: bytes, msg_id="msg_1", timestamp=None, secret=SIGNING_SECRET):
    timestamp = str(int(time.time())) if timestamp is None else timestamp
    return {
        "svix-id": msg_id,
        "svix-timestamp": timestamp,
        "svix-signature": sign_payload(secret, msg_id, timestamp, body),
        "content-type": "application/json",
    }


def test_load_api_keys_merges_file_and_inline(tmp_path):
    keys_file = tmp_path / "api_keys.txt"
    keys_file.write_text("alpha, beta\n\ngamma\n", encoding="utf-8")

    assert load_api_keys(str(keys_file), " inline ") == {"alpha", "beta", "gamma", "inline"}
    assert load_api_keys(str(tmp_path / "missing.txt"), None) == set()


def test_api_key_resolves_user(anonymous_client):
    resp = anonymous_client.get("/workouts", headers={"X-API-Key": f"{API_KEY}:user_key"})
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.parametrize("value", ["wrong:user_key", API_KEY, f"{API_KEY}:"])
def test_bad_api_keys_rejected(anonymous_client, value):
    assert anonymous_client.get("/workouts", headers={"X-API-Key": value}).status_code == 401


def test_bearer_token_owner_is_sub_claim(anonymous_client):
    headers = {"Authorization": f"Bearer {make_token()}"}

    created = anonymous_client.post(
        "/workouts", json={"name": "Token Day", "intervals": []}, headers=headers
    )

    assert created.status_code == 200
    assert created.json()["userId"] == "user_jwt"


@pytest.mark.parametrize(
    "header",
    [
        "Bearer " + make_token(secret="another-secret-that-is-long-enough-too"),
        "Bearer " + make_token(exp=int(time.time()) - 10),
        "Bearer " + make_token(sub=""),
        "Bearer not-a-jwt",
        "Token abc",
    ],
)
def test_bad_bearer_tokens_rejected(anonymous_client, header):
    assert anonymous_client.get("/workouts", headers={"Authorization": header}).status_code == 401


def test_bearer_token_without_jwt_config_is_unauthorized(session_factory):
    app = create_app(
        session_factory=session_factory,
        token_verifier=TokenVerifier({API_KEY}),
        signing_secret=None,
    )

    with TestClient(app) as api_key_only:
        resp = api_key_only.get("/workouts", headers={"Authorization": f"Bearer {make_token()}"})
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid token"}

        resp = api_key_only.get("/workouts", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401


def test_audience_is_checked_when_configured():
    verifier = TokenVerifier(set(), secret=JWT_SECRET, audience="workout-timer")

    assert verifier._verify(make_token(aud="workout-timer")) == "user_jwt"
    assert verifier._verify(make_token(aud="someone-else")) is None


def test_verify_webhook_accepts_rotated_signatures():
    body = b'{"data": {"id": "user_1"}}'
    headers = signed_headers(body, timestamp="1700000000")
    headers["svix-signature"] = "v1,bogus " + headers["svix-signature"]

    event = verify_webhook(SIGNING_SECRET, headers, body, now=1700000100)

    assert event["data"]["id"] == "user_1"


def test_verify_webhook_rejects_stale_timestamp():
    body = b'{"data": {"id": "user_1"}}'
    headers = signed_headers(body, timestamp="1700000000")

    with pytest.raises(BadRequest):
        verify_webhook(SIGNING_SECRET, headers, body, now=1700000000 + 301)


def test_verify_webhook_requires_secret():
    body = b"{}"
    with pytest.raises(BadRequest):
        verify_webhook(None, signed_headers(body), body)


@pytest.fixture
def webhook_client(session_factory):
    app = create_app(
        session_factory=session_factory,
        token_verifier=TokenVerifier({API_KEY}, secret=JWT_SECRET),
        signing_secret=SIGNING_SECRET,
    )
    with TestClient(app) as client:
        yield client


def test_signed_user_created_event(webhook_client):
    body = json.dumps({"type": "user.created", "data": {"id": "user_hook", "email": "a@b.c"}}).encode()

    resp = webhook_client.post("/user", content=body, headers=signed_headers(body))

    assert resp.status_code == 200
    assert resp.json()["id"] == "user_hook"


def test_missing_signature_headers_rejected(webhook_client):
    resp = webhook_client.post("/user", json={"id": "user_raw"})

    assert resp.status_code == 400
    assert resp.json() == {"message": "Error: Missing Svix headers"}


def test_tampered_body_rejected(webhook_client):
    body = json.dumps({"data": {"id": "user_hook"}}).encode()
    headers = signed_headers(body)

    resp = webhook_client.post("/user", content=body.replace(b"hook", b"evil"), headers=headers)

    assert resp.status_code == 400
    assert resp.json() == {"message": "Error: Could not verify webhook"}


def test_signed_event_without_user_id_rejected(webhook_client):
    body = json.dumps({"type": "user.created", "data": {}}).encode()

    resp = webhook_client.post("/user", content=body, headers=signed_headers(body))

    assert resp.status_code == 400
