"""Tests for the terminal bridge and its WebSocket route."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from termbridge.domain.models import SessionState
from termbridge.server import create_app
from termbridge.terminal.bridge import TerminalBridge
from tests.fakes import FakeConnection, ShellRecorder, requires_bash


@pytest.fixture
def bridge(shell_recorder: ShellRecorder) -> TerminalBridge:
    return TerminalBridge(shell_command="/bin/bash", shell_factory=shell_recorder)


class TestSessionTracking:
    @pytest.mark.asyncio
    async def test_create_and_release(self, bridge: TerminalBridge) -> None:
        session = bridge.create_session(FakeConnection())
        assert bridge.active_sessions == 1
        assert bridge.get_session(session.session_id) is session
        await bridge.release_session(session)
        assert bridge.active_sessions == 0
        assert session.state is SessionState.TERMINATED

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(
        self, bridge: TerminalBridge, shell_recorder: ShellRecorder
    ) -> None:
        a = bridge.create_session(FakeConnection())
        b = bridge.create_session(FakeConnection())
        await a.on_init()
        await b.on_init()
        assert a.session_id != b.session_id
        assert a.shell is not b.shell
        await bridge.release_session(a)
        assert b.has_live_shell

    @pytest.mark.asyncio
    async def test_shutdown_closes_everything(
        self, bridge: TerminalBridge, shell_recorder: ShellRecorder
    ) -> None:
        for _ in range(3):
            await bridge.create_session(FakeConnection()).on_init()
        await bridge.shutdown()
        assert bridge.active_sessions == 0
        assert shell_recorder.live == []


class TestDispatch:
    @pytest.mark.asyncio
    async def test_bad_frames_are_dropped(
        self, bridge: TerminalBridge, shell_recorder: ShellRecorder
    ) -> None:
        connection = FakeConnection()
        session = bridge.create_session(connection)
        await bridge.dispatch(session, '{"type": "terminal:bogus"}')
        await bridge.dispatch(session, "not json")
        await bridge.dispatch(session, '{"type": "terminal:init"}')
        assert session.state is SessionState.ACTIVE
        assert len(shell_recorder.shells) == 1

    @pytest.mark.asyncio
    async def test_handler_errors_do_not_escape(
        self, bridge: TerminalBridge, shell_recorder: ShellRecorder
    ) -> None:
        session = bridge.create_session(FakeConnection())

        def broken_factory(**kwargs):
            raise RuntimeError("factory exploded")

        session._shell_factory = broken_factory
        await bridge.dispatch(session, '{"type": "terminal:init"}')
        assert bridge.active_sessions == 1


class TestWebSocketRoute:
    @pytest.fixture
    def echo_recorder(self) -> ShellRecorder:
        return ShellRecorder(echo=True)

    @pytest.fixture
    def client(self, echo_recorder: ShellRecorder) -> TestClient:
        bridge = TerminalBridge(shell_factory=echo_recorder)
        return TestClient(create_app(bridge=bridge))

    def test_init_input_roundtrip(self, client: TestClient, echo_recorder: ShellRecorder) -> None:
        with client.websocket_connect("/terminal") as ws:
            ws.send_json({"type": "terminal:init"})
            banner = ws.receive_json()
            assert banner["type"] == "terminal:output"
            assert banner["content"].startswith("Terminal started")

            ws.send_json({"type": "terminal:input", "content": "whoami\n"})
            assert ws.receive_json() == {"type": "terminal:output", "content": "whoami\n"}

            resp = client.get("/health")
            assert resp.json()["active_sessions"] == 1

        assert echo_recorder.shells[0].written == ["whoami\n"]

    def test_unknown_frame_keeps_connection_open(self, client: TestClient) -> None:
        with client.websocket_connect("/terminal") as ws:
            ws.send_text('{"type": "terminal:nope"}')
            ws.send_text("garbage")
            ws.send_json({"type": "terminal:init"})
            assert ws.receive_json()["content"].startswith("Terminal started")

    def test_disconnect_kills_shell(self, client: TestClient, echo_recorder: ShellRecorder) -> None:
        with client.websocket_connect("/terminal") as ws:
            ws.send_json({"type": "terminal:init"})
            ws.receive_json()
        assert echo_recorder.shells[0].killed
        assert client.get("/health").json()["active_sessions"] == 0


def _receive_until(ws, needle: str, limit: int = 200) -> str:
    seen = ""
    for _ in range(limit):
        frame = ws.receive_json()
        assert frame["type"] == "terminal:output"
        seen += frame["content"]
        if needle in seen:
            return seen
    raise AssertionError(f"{needle!r} not received; got {seen!r}")


@requires_bash
class TestRealShell:
    def test_bash_session_with_respawn(self) -> None:
        client = TestClient(create_app(bridge=TerminalBridge(shell_command="/bin/bash")))
        with client.websocket_connect("/terminal") as ws:
            ws.send_json({"type": "terminal:init"})
            _receive_until(ws, "Terminal started")

            ws.send_json({"type": "terminal:input", "content": "echo bridge-$((40 + 2))\n"})
            _receive_until(ws, "bridge-42")

            ws.send_json({"type": "terminal:input", "content": "exit 0\n"})
            _receive_until(ws, "Process exited (code 0)")

            ws.send_json({"type": "terminal:input", "content": "echo dropped\n"})
            _receive_until(ws, "Terminal started")

            ws.send_json({"type": "terminal:input", "content": "echo back-again\n"})
            out = _receive_until(ws, "back-again")
            assert "dropped" not in out
