import json
import uuid
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect
from peer_support.api import deps
from peer_support.core.config import settings
from peer_support.core.errors import TransportError
from peer_support.services.change_feed import ChangeFeed
from peer_support.services.message_store import MessageStoreClient
from tests.utils import build_app, make_engine, make_sessions

@pytest.fixture
def stream_client(tmp_path):
    engine = make_engine(tmp_path / "stream.db")
    feed = ChangeFeed()
    app = build_app(engine, make_sessions(engine), feed)
    with TestClient(app) as client:
        yield client, feed

def signup_and_join(client: TestClient, title: str = "Academics", join: bool = True):
    email = f"ws_{uuid.uuid4().hex[:8]}@my.fisk.edu"
    client.post(f"{settings.API_V1_STR}/auth/signup", json={
        "email": email,
        "password": "password123",
        "first_name": "Web",
        "last_name": "Socket"
    })
    token = client.post(f"{settings.API_V1_STR}/auth/login", json={
        "email": email,
        "password": "password123"
    }).json()["data"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    groups = client.get(f"{settings.API_V1_STR}/groups/", headers=headers).json()["data"]
    group_id = next(g["id"] for g in groups if g["title"] == title)
    if join:
        client.post(f"{settings.API_V1_STR}/groups/{group_id}/terms", headers=headers)
        client.post(f"{settings.API_V1_STR}/groups/{group_id}/join", headers=headers)
    return token, headers, group_id

def test_stream_pushes_snapshots(stream_client):
    client, feed = stream_client
    token, headers, group_id = signup_and_join(client)

    with client.websocket_connect(f"{settings.API_V1_STR}/chat/{group_id}/ws?token={token}") as ws:
        initial = ws.receive_json()
        assert initial["group_id"] == group_id
        assert initial["version"] == 1
        assert initial["messages"] == []

        client.post(f"{settings.API_V1_STR}/chat/{group_id}", json={"text": "hello from http"}, headers=headers)
        after_http = ws.receive_json()
        assert after_http["version"] == 2
        assert [m["messageText"] for m in after_http["messages"]] == ["hello from http"]

        ws.send_text(json.dumps({"text": "hello from socket"}))
        after_ws = ws.receive_json()
        assert after_ws["version"] == 3
        assert [m["messageText"] for m in after_ws["messages"]] == ["hello from http", "hello from socket"]

        message_id = after_ws["messages"][0]["id"]
        client.delete(f"{settings.API_V1_STR}/chat/{group_id}/messages/{message_id}", headers=headers)
        after_delete = ws.receive_json()
        assert [m["messageText"] for m in after_delete["messages"]] == ["hello from socket"]

def test_stream_rejects_invalid_frames(stream_client):
    client, _ = stream_client
    token, _, group_id = signup_and_join(client)

    with client.websocket_connect(f"{settings.API_V1_STR}/chat/{group_id}/ws?token={token}") as ws:
        ws.receive_json()
        ws.send_text(json.dumps({"text": "   "}))
        error = ws.receive_json()
        assert error["error"] == "Invalid message"

        ws.send_text("not json")
        assert ws.receive_json()["error"] == "Invalid message"

def test_stream_requires_membership(stream_client):
    client, _ = stream_client
    token, _, group_id = signup_and_join(client, join=False)

    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(f"{settings.API_V1_STR}/chat/{group_id}/ws?token={token}") as ws:
            ws.receive_json()

    assert excinfo.value.code == 1008

def test_stream_rejects_bad_token(stream_client):
    client, _ = stream_client
    _, _, group_id = signup_and_join(client)

    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(f"{settings.API_V1_STR}/chat/{group_id}/ws?token=garbage") as ws:
            ws.receive_json()

    assert excinfo.value.code == 1008

def test_stream_keeps_delivering_after_error_frame(stream_client):
    client, _ = stream_client
    token, _, group_id = signup_and_join(client)

    with client.websocket_connect(f"{settings.API_V1_STR}/chat/{group_id}/ws?token={token}") as ws:
        ws.receive_json()
        ws.send_text("not json")
        ws.send_text(json.dumps({"text": "still here"}))

        assert ws.receive_json()["error"] == "Invalid message"
        snapshot = ws.receive_json()
        assert snapshot["version"] == 2
        assert [m["messageText"] for m in snapshot["messages"]] == ["still here"]

class UnavailableStore(MessageStoreClient):
    async def fetch_join_timestamp(self, group_id, user_id):
        raise TransportError("connection refused")

def test_stream_closes_when_store_unavailable(tmp_path):
    engine = make_engine(tmp_path / "unavailable.db")
    sessions = make_sessions(engine)
    feed = ChangeFeed()
    app = build_app(engine, sessions, feed)
    app.dependency_overrides[deps.get_message_store] = lambda: UnavailableStore(sessions, feed)

    with TestClient(app) as client:
        token, _, group_id = signup_and_join(client)

        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect(f"{settings.API_V1_STR}/chat/{group_id}/ws?token={token}") as ws:
                ws.receive_json()

    assert excinfo.value.code == 1011
