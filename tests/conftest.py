import asyncio
import os

os.environ.setdefault("JANUS_STREAMER_SKIP_DEFAULT_LOGGING", "1")

import httpx
import orjson
import pytest

from janus_streamer.common.errors import ErrorCode, ProtocolError, TransportError
from janus_streamer.domain.models.camera import CameraParameters

GATEWAY_URL = "http://gateway.test/janus"


class FakeSignalingClient:
    """
    In-process gateway stub implementing the signalling-client protocol.

    Session ids start at 100, handle ids at 200. A step can be made to fail
    (``fail_on``) or to block until released (``hold``/``release``).
    """

    def __init__(self, base_url=GATEWAY_URL):
        self.base_url = base_url
        self.calls = []
        self.returned = []
        self.keepalives = []
        self.fail_on = None
        self.swallow_cancel = False
        self._next_session = 100
        self._next_handle = 200
        self._gates = {}

    def start(self):
        pass

    async def close(self):
        pass

    def hold(self, step):
        self._gates[step] = asyncio.Event()

    def release(self, step):
        self._gates.pop(step).set()

    async def _gate(self, step):
        gate = self._gates.get(step)
        if gate is None:
            return
        try:
            await gate.wait()
        except asyncio.CancelledError:
            if not self.swallow_cancel:
                raise
            # a transport that ignores cancellation and answers anyway
            await gate.wait()

    def _maybe_fail(self, step):
        if self.fail_on == step:
            raise TransportError(
                ErrorCode.TRANSPORT_FAILED,
                f"{step} failed",
                target_url=self.base_url,
            )
        if self.fail_on == f"{step}:protocol":
            raise ProtocolError(f"{step} rejected", target_url=self.base_url, response_tag="error")

    async def create_session(self):
        self.calls.append(("create_session",))
        await self._gate("create_session")
        self._maybe_fail("create_session")
        session_id = self._next_session
        self._next_session += 1
        self.returned.append("create_session")
        return session_id

    async def attach_plugin(self, session_id):
        self.calls.append(("attach_plugin", session_id))
        await self._gate("attach_plugin")
        self._maybe_fail("attach_plugin")
        handle_id = self._next_handle
        self._next_handle += 1
        self.returned.append("attach_plugin")
        return handle_id

    async def create_mountpoint(self, session_id, handle_id, params, mountpoint_id):
        self.calls.append(("create_mountpoint", session_id, handle_id, mountpoint_id))
        await self._gate("create_mountpoint")
        self._maybe_fail("create_mountpoint")
        self.returned.append("create_mountpoint")
        return {"streaming": "created", "created": params.room_name}

    async def keep_alive(self, session_id):
        self.keepalives.append(session_id)


def janus_handler(request: httpx.Request) -> httpx.Response:
    """httpx.MockTransport handler answering like a healthy gateway."""
    payload = orjson.loads(request.content)
    kind = payload["janus"]
    transaction = payload.get("transaction")
    if kind == "create":
        return httpx.Response(200, json={"janus": "success", "transaction": transaction, "data": {"id": 100}})
    if kind == "attach":
        return httpx.Response(200, json={"janus": "success", "transaction": transaction, "data": {"id": 200}})
    if kind == "message":
        return httpx.Response(
            200,
            json={
                "janus": "success",
                "transaction": transaction,
                "plugindata": {
                    "plugin": "janus.plugin.streaming",
                    "data": {"streaming": "created", "created": payload["body"]["name"]},
                },
            },
        )
    if kind == "keepalive":
        return httpx.Response(200, json={"janus": "ack", "transaction": transaction})
    return httpx.Response(200, json={"janus": "error", "error": {"code": 454, "reason": "unknown request"}})


@pytest.fixture()
def fake_client():
    return FakeSignalingClient()


@pytest.fixture()
def camera_params():
    return CameraParameters(
        camera_uuid="cam1",
        customer_name="Metro District",
        appliance_name="North High",
        camera_id="C-17",
        room_name="Lobby",
        ip_port="10.0.0.5:554",
        rtsp_password="pw",
    )


def make_params(camera_uuid="cam1", **overrides):
    fields = {
        "room_name": "Lobby",
        "ip_port": "10.0.0.5:554",
    }
    fields.update(overrides)
    return CameraParameters(camera_uuid=camera_uuid, **fields)


def collect_events():
    events = []
    return events, events.append
