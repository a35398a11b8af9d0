"""
Tests for the live-update relay: channel registry, WebSocket protocol and
the publisher the web app uses to push events.
"""
import asyncio

import pytest
import requests
from fastapi.testclient import TestClient

from wfn24.live import ChannelRelay, RelayPublisher, channel_for
from wfn24.live.server import create_relay_app


class FakeWebSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)


# =============================================================================
# Channel registry
# =============================================================================

class TestChannelRelay:

    def test_channel_names(self):
        assert channel_for("match", 12) == "match_12"
        assert channel_for("league", 39) == "league_39"
        with pytest.raises(ValueError):
            channel_for("team", 40)

    def test_broadcast_reaches_only_subscribers(self):
        relay = ChannelRelay()
        subscriber, bystander = FakeWebSocket(), FakeWebSocket()

        async def scenario():
            await relay.connect(subscriber)
            await relay.connect(bystander)
            await relay.subscribe(subscriber, "match_12")
            return await relay.broadcast_to_channel("match_12", {"type": "score_update"})

        assert asyncio.run(scenario()) == 1
        assert subscriber.accepted
        assert subscriber.sent == [{"type": "score_update"}]
        assert bystander.sent == []

    def test_broadcast_to_all(self):
        relay = ChannelRelay()
        sockets = [FakeWebSocket(), FakeWebSocket()]

        async def scenario():
            for ws in sockets:
                await relay.connect(ws)
            return await relay.broadcast_to_all({"type": "notice"})

        assert asyncio.run(scenario()) == 2

    def test_failed_send_drops_connection(self):
        relay = ChannelRelay()
        healthy, broken = FakeWebSocket(), FakeWebSocket(fail=True)

        async def scenario():
            for ws in (healthy, broken):
                await relay.connect(ws)
                await relay.subscribe(ws, "league_39")
            return await relay.broadcast_to_channel("league_39", {"type": "goal"})

        assert asyncio.run(scenario()) == 1
        assert relay.connection_count == 1
        assert relay.subscribers("league_39") == 1

    def test_disconnect_removes_subscriptions(self):
        relay = ChannelRelay()
        ws = FakeWebSocket()

        async def scenario():
            await relay.connect(ws)
            await relay.subscribe(ws, "match_1")
            await relay.subscribe(ws, "league_39")
            await relay.disconnect(ws)

        asyncio.run(scenario())
        assert relay.connection_count == 0
        assert relay.channels() == []

    def test_unsubscribe(self):
        relay = ChannelRelay()
        ws = FakeWebSocket()

        async def scenario():
            await relay.connect(ws)
            await relay.subscribe(ws, "match_1")
            return await relay.unsubscribe(ws, "match_1"), await relay.unsubscribe(ws, "match_1")

        assert asyncio.run(scenario()) == (True, False)


# =============================================================================
# Relay server
# =============================================================================

@pytest.fixture
def relay_client():
    with TestClient(create_relay_app(secret="")) as client:
        yield client


def test_subscribe_and_receive_broadcast(relay_client):
    with relay_client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "subscribe_match", "match_id": 12})
        assert ws.receive_json() == {"type": "subscribed", "channel": "match_12"}

        response = relay_client.post(
            "/broadcast",
            json={"channel": "match_12", "event": {"type": "score_update", "home_score": 1}},
        )
        assert response.json()["delivered"] == 1
        assert ws.receive_json() == {"type": "score_update", "home_score": 1}


def test_protocol_errors(relay_client):
    with relay_client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "error": "Invalid JSON"}

        ws.send_json([1, 2])
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "dance"})
        assert ws.receive_json() == {"type": "error", "error": "Unknown message type: dance"}

        ws.send_json({"type": "subscribe_league"})
        assert ws.receive_json() == {"type": "error", "error": "league_id required"}

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_unsubscribe_message(relay_client):
    with relay_client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "subscribe_league", "league_id": 39})
        ws.receive_json()
        assert relay_client.get("/health").json()["channels"] == ["league_39"]

        ws.send_json({"type": "unsubscribe", "channel": "league_39"})
        assert ws.receive_json() == {"type": "unsubscribed", "channel": "league_39", "was_subscribed": True}


def test_broadcast_requires_secret():
    with TestClient(create_relay_app(secret="s3cret")) as client:
        body = {"channel": "match_1", "event": {"type": "goal"}}
        assert client.post("/broadcast", json=body).status_code == 403
        assert client.post("/broadcast", json=body, headers={"X-Relay-Secret": "s3cret"}).status_code == 200


# =============================================================================
# Publisher
# =============================================================================

class FakeSession:
    def __init__(self, error=None):
        self.error = error
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers})
        if self.error:
            raise self.error
        return FakeResponse()


class FakeResponse:
    status_code = 200

    def raise_for_status(self):
        pass


def test_publisher_posts_to_broadcast():
    session = FakeSession()
    publisher = RelayPublisher(url="http://relay:8080/", secret="s3cret", session=session)

    assert publisher.publish("match_12", {"type": "score_update"}) is True
    post = session.posts[0]
    assert post["url"] == "http://relay:8080/broadcast"
    assert post["json"] == {"channel": "match_12", "event": {"type": "score_update"}}
    assert post["headers"] == {"X-Relay-Secret": "s3cret"}


def test_publisher_failure_returns_false():
    publisher = RelayPublisher(
        url="http://relay:8080", secret="", session=FakeSession(requests.ConnectionError("refused"))
    )
    assert publisher.publish("match_12", {"type": "score_update"}) is False


def test_publisher_disabled_without_url():
    session = FakeSession()
    publisher = RelayPublisher(url="", session=session)
    assert not publisher.enabled
    assert publisher.publish("match_12", {}) is False
    assert session.posts == []
