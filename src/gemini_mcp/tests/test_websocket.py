"""Tests for the WebSocket adapter on `/ws`."""

from __future__ import annotations

import asyncio

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect, WebSocketState

from gemini_mcp.ext.mcp import HTTPToolServer
from gemini_mcp.ext.mcp.websocket import WebSocketConnection
from gemini_mcp.foundation.testing import StubBackend
from gemini_mcp.io.streaming import decode, encode_str
from gemini_mcp.runtime import Dispatcher
from gemini_mcp.tools import build_catalog

CHAT_CALL = {
    "type": "tool_call",
    "id": "1",
    "tool": "chat_with_gemini",
    "parameters": {"model": "gemini-2.0-flash", "conversation": [], "message": "hi"},
}


def test_server_info_sent_first(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        hello = ws.receive_json()

    assert hello["type"] == "server_info"
    assert hello["server"]["name"] == "gemini-mcp-server"
    assert hello["server"]["capabilities"]["resources"] == ["gemini_models"]


def test_chat_tool_call(client: TestClient, stub: StubBackend) -> None:
    stub.text = "ok"
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json()["type"] == "server_info"
        ws.send_json(CHAT_CALL)
        assert ws.receive_json() == {"type": "tool_result", "id": "1", "result": "ok"}

    assert stub.last_call.operation == "chat_turn"


def test_get_tools(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "get_tools"})
        reply = ws.receive_json()

    assert reply["type"] == "tools"
    assert [t["name"] for t in reply["tools"]] == ["ask_gemini", "chat_with_gemini", "gemini_function_call"]


def test_unknown_tool_error(client: TestClient, stub: StubBackend) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "tool_call", "id": 9, "tool": "nope", "parameters": {}})
        reply = ws.receive_json()

    assert reply == {"type": "tool_error", "id": 9, "error": {"kind": "UnknownTool", "message": "Tool 'nope' not found"}}
    stub.assert_not_called()


def test_unknown_message_type(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "subscribe"})
        reply = ws.receive_json()

    assert reply["type"] == "error"
    assert reply["error"]["kind"] == "UnknownMessageType"


def test_malformed_json_keeps_connection(client: TestClient) -> None:
    """A decode error is reported and the socket stays usable."""
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_text("{definitely not json")
        assert ws.receive_json()["error"]["kind"] == "TransportDecodeError"

        ws.send_json({"type": "get_tools"})
        assert ws.receive_json()["type"] == "tools"


def test_streaming_tool_call(client: TestClient, stub: StubBackend) -> None:
    stub.chunks = ["a", "b"]
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({
            "type": "tool_call", "id": "s1", "tool": "ask_gemini", "stream": True,
            "parameters": {"model": "gemini-2.0-flash", "query": "hi"},
        })
        replies = [ws.receive_json() for _ in range(3)]

    assert replies == [
        {"type": "tool_chunk", "id": "s1", "text": "a"},
        {"type": "tool_chunk", "id": "s1", "text": "b"},
        {"type": "tool_done", "id": "s1"},
    ]


def test_auth_closes_with_policy_violation(dispatcher: Dispatcher) -> None:
    client = TestClient(HTTPToolServer(dispatcher, auth_token="s3cret").app)

    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
    assert exc.value.code == 1008

    with client.websocket_connect("/ws?token=s3cret") as ws:
        assert ws.receive_json()["type"] == "server_info"

    with client.websocket_connect("/ws", headers={"Authorization": "Bearer s3cret"}) as ws:
        assert ws.receive_json()["type"] == "server_info"


# ═════════════════════════════════════════════════════════════════════════════
# Opaque ids and frame types
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("request_id", [["a", 1], {"trace": "x"}, None, 3.5])
def test_any_json_id_is_echoed(client: TestClient, request_id: object) -> None:
    """Ids are opaque: structured values come back unchanged and the socket stays open."""
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({**CHAT_CALL, "id": request_id})
        assert ws.receive_json() == {"type": "tool_result", "id": request_id, "result": "4"}

        ws.send_json({"type": "get_tools"})
        assert ws.receive_json()["type"] == "tools"


def test_repeated_ids_run_independently(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json(CHAT_CALL)
        ws.send_json(CHAT_CALL)
        replies = [ws.receive_json() for _ in range(2)]

    assert replies == [{"type": "tool_result", "id": "1", "result": "4"}] * 2


def test_binary_frame_is_decoded(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_bytes(b'{"type": "get_tools"}')
        assert ws.receive_json()["type"] == "tools"


def test_undecodable_binary_frame_keeps_connection(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_bytes(b"\xff\xfe\x00")
        assert ws.receive_json()["error"]["kind"] == "TransportDecodeError"

        ws.send_json({"type": "get_tools"})
        assert ws.receive_json()["type"] == "tools"


# ═════════════════════════════════════════════════════════════════════════════
# Disconnect
# ═════════════════════════════════════════════════════════════════════════════


class ScriptedSocket:
    """Minimal WebSocket double fed from a queue of ASGI receive events."""

    def __init__(self) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.incoming: asyncio.Queue[dict] = asyncio.Queue()
        self.sent: list[dict] = []

    async def accept(self) -> None:
        pass

    async def receive(self) -> dict:
        return await self.incoming.get()

    async def send_text(self, data: str) -> None:
        self.sent.append(decode(data))

    def push(self, message: dict) -> None:
        self.incoming.put_nowait({"type": "websocket.receive", "text": encode_str(message)})

    def disconnect(self) -> None:
        self.client_state = WebSocketState.DISCONNECTED
        self.incoming.put_nowait({"type": "websocket.disconnect", "code": 1001})


class HangingBackend(StubBackend):
    """Blocks every generate call until cancelled."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.cancelled = False

    async def generate(self, model, prompt, options=None):
        self.started.set()
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return self.text


@pytest.mark.asyncio
async def test_disconnect_cancels_in_flight_call() -> None:
    backend = HangingBackend()
    socket = ScriptedSocket()
    connection = WebSocketConnection(Dispatcher(build_catalog(), backend), socket)
    running = asyncio.create_task(connection.run())

    socket.push({"type": "tool_call", "id": "slow", "tool": "ask_gemini",
                 "parameters": {"model": "gemini-2.0-flash", "query": "hi"}})
    await asyncio.wait_for(backend.started.wait(), 1)
    assert len(connection.session.open_streams) == 1

    socket.disconnect()
    await asyncio.wait_for(running, 1)

    assert backend.cancelled
    assert connection.session.open_streams == set()
    assert [m["type"] for m in socket.sent] == ["server_info"]


@pytest.mark.asyncio
async def test_finished_calls_leave_session() -> None:
    socket = ScriptedSocket()
    connection = WebSocketConnection(Dispatcher(build_catalog(), StubBackend(text="4")), socket)
    running = asyncio.create_task(connection.run())

    socket.push({**CHAT_CALL, "id": ["a"]})
    for _ in range(50):
        if len(socket.sent) == 2:
            break
        await asyncio.sleep(0.01)
    await asyncio.sleep(0.01)
    assert socket.sent[1] == {"type": "tool_result", "id": ["a"], "result": "4"}
    assert connection.session.open_streams == set()

    socket.disconnect()
    await asyncio.wait_for(running, 1)
