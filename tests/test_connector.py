import asyncio

import pytest

from conftest import FakeSignalingClient, collect_events, make_params
from janus_streamer.application.connector.connector import GatewayConnector
from janus_streamer.common.errors import CameraError, ConnectorError, ErrorCode
from janus_streamer.domain.models.connector import ConnectorEventType, ConnectorState


def _record_states(connector, seen):
    """Sample the connector state on every loop iteration until cancelled."""

    async def _sampler():
        while True:
            if not seen or seen[-1] != connector.state:
                seen.append(connector.state)
            await asyncio.sleep(0)

    return asyncio.get_running_loop().create_task(_sampler())


def test_handshake_reaches_ready_with_gateway_ids(fake_client, camera_params):
    async def scenario():
        events, sink = collect_events()
        connector = GatewayConnector("cam1", fake_client, on_event=sink, mountpoint_id=41)

        connector.connect_to_gateway(camera_params)
        assert connector.state == ConnectorState.CREATING_SESSION

        await connector.wait_for_state(ConnectorState.READY, timeout=2)

        assert connector.session_id == 100
        assert connector.handle_id == 200
        assert connector.is_connected
        assert connector.params is camera_params
        assert fake_client.calls == [
            ("create_session",),
            ("attach_plugin", 100),
            ("create_mountpoint", 100, 200, 41),
        ]
        assert [e.type for e in events] == [
            ConnectorEventType.SESSION_READY,
            ConnectorEventType.CONNECTION_STATE_CHANGED,
        ]
        ready, changed = events
        assert (ready.session_id, ready.handle_id) == (100, 200)
        assert ready.camera_uuid == "cam1"
        assert ready.connector_id == 41
        assert changed.connected is True

        connector.disconnect()

    asyncio.run(scenario())


def test_states_advance_in_order_without_skipping(fake_client, camera_params):
    async def scenario():
        connector = GatewayConnector("cam1", fake_client)
        for step in ("create_session", "attach_plugin", "create_mountpoint"):
            fake_client.hold(step)

        connector.connect_to_gateway(camera_params)
        seen = [connector.state]

        await asyncio.sleep(0)
        fake_client.release("create_session")
        await connector.wait_for_state(ConnectorState.ATTACHING_PLUGIN, timeout=2)
        seen.append(connector.state)

        fake_client.release("attach_plugin")
        await connector.wait_for_state(ConnectorState.CREATING_MOUNTPOINT, timeout=2)
        seen.append(connector.state)

        fake_client.release("create_mountpoint")
        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        seen.append(connector.state)

        assert seen == [
            ConnectorState.CREATING_SESSION,
            ConnectorState.ATTACHING_PLUGIN,
            ConnectorState.CREATING_MOUNTPOINT,
            ConnectorState.READY,
        ]
        connector.disconnect()

    asyncio.run(scenario())


def test_sampled_states_are_a_prefix_of_the_handshake(fake_client, camera_params):
    async def scenario():
        connector = GatewayConnector("cam1", fake_client)
        seen = []
        sampler = _record_states(connector, seen)
        connector.connect_to_gateway(camera_params)
        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        await asyncio.sleep(0)
        sampler.cancel()

        order = [
            ConnectorState.IDLE,
            ConnectorState.CREATING_SESSION,
            ConnectorState.ATTACHING_PLUGIN,
            ConnectorState.CREATING_MOUNTPOINT,
            ConnectorState.READY,
        ]
        positions = [order.index(state) for state in seen]
        assert positions == sorted(positions)
        assert seen[-1] == ConnectorState.READY
        connector.disconnect()

    asyncio.run(scenario())


@pytest.mark.parametrize(
    "failing_step",
    ["create_session", "attach_plugin", "create_mountpoint", "create_mountpoint:protocol"],
)
def test_failure_at_any_step_resets_to_idle(camera_params, failing_step):
    async def scenario():
        client = FakeSignalingClient()
        client.fail_on = failing_step
        events, sink = collect_events()
        connector = GatewayConnector("cam1", client, on_event=sink, keepalive_interval=0.01)

        connector.connect_to_gateway(camera_params)
        for _ in range(50):
            await asyncio.sleep(0)
            if events:
                break

        assert connector.state == ConnectorState.IDLE
        assert connector.session_id == 0
        assert connector.handle_id == 0
        assert not connector.keepalive_active
        assert [e.type for e in events] == [ConnectorEventType.ERROR]
        assert "failed" in events[0].error or "rejected" in events[0].error

        # no automatic retry
        await asyncio.sleep(0.03)
        assert len([c for c in client.calls if c[0] == "create_session"]) == 1

    asyncio.run(scenario())


def test_can_reconnect_after_failure(camera_params):
    async def scenario():
        client = FakeSignalingClient()
        client.fail_on = "attach_plugin"
        connector = GatewayConnector("cam1", client)
        connector.connect_to_gateway(camera_params)
        await asyncio.sleep(0.01)
        assert connector.state == ConnectorState.IDLE

        client.fail_on = None
        connector.connect_to_gateway(camera_params)
        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        assert connector.session_id == 101
        connector.disconnect()

    asyncio.run(scenario())


def test_invalid_parameters_are_rejected_and_state_stays_idle(fake_client):
    async def scenario():
        connector = GatewayConnector("cam1", fake_client)
        with pytest.raises(CameraError) as exc_info:
            connector.connect_to_gateway(make_params("cam1", ip_port=""))
        assert exc_info.value.code == ErrorCode.INVALID_PARAMETERS
        assert connector.state == ConnectorState.IDLE
        assert fake_client.calls == []

    asyncio.run(scenario())


def test_connect_outside_idle_is_rejected(fake_client, camera_params):
    async def scenario():
        connector = GatewayConnector("cam1", fake_client)
        fake_client.hold("create_session")
        connector.connect_to_gateway(camera_params)

        with pytest.raises(ConnectorError) as exc_info:
            connector.connect_to_gateway(camera_params)
        assert exc_info.value.code == ErrorCode.CONNECTOR_BUSY

        await asyncio.sleep(0)
        assert fake_client.calls == [("create_session",)]
        connector.disconnect()

    asyncio.run(scenario())


def test_disconnect_is_idempotent(fake_client, camera_params):
    async def scenario():
        events, sink = collect_events()
        connector = GatewayConnector("cam1", fake_client, on_event=sink)
        connector.connect_to_gateway(camera_params)
        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        events.clear()

        connector.disconnect()
        connector.disconnect()

        assert connector.state == ConnectorState.IDLE
        assert connector.session_id == 0
        assert [e.type for e in events] == [ConnectorEventType.CONNECTION_STATE_CHANGED]
        assert events[0].connected is False

    asyncio.run(scenario())


def test_disconnect_mid_mountpoint_discards_late_response(fake_client, camera_params):
    async def scenario():
        fake_client.swallow_cancel = True
        fake_client.hold("create_mountpoint")
        events, sink = collect_events()
        connector = GatewayConnector("cam1", fake_client, on_event=sink)

        connector.connect_to_gateway(camera_params)
        await connector.wait_for_state(ConnectorState.CREATING_MOUNTPOINT, timeout=2)

        connector.disconnect()
        assert connector.state == ConnectorState.IDLE

        # the gateway answers after the abort
        fake_client.release("create_mountpoint")
        for _ in range(50):
            await asyncio.sleep(0)
            if "create_mountpoint" in fake_client.returned:
                break
        await asyncio.sleep(0.01)

        assert "create_mountpoint" in fake_client.returned
        assert connector.state == ConnectorState.IDLE
        assert connector.session_id == 0
        assert connector.handle_id == 0
        assert [e.type for e in events] == [ConnectorEventType.CONNECTION_STATE_CHANGED]

    asyncio.run(scenario())


def test_keepalive_runs_while_connected_and_stops_on_disconnect(fake_client, camera_params):
    async def scenario():
        connector = GatewayConnector("cam1", fake_client, keepalive_interval=0.01)
        connector.connect_to_gateway(camera_params)
        await connector.wait_for_state(ConnectorState.READY, timeout=2)

        await asyncio.sleep(0.05)
        assert fake_client.keepalives
        assert set(fake_client.keepalives) == {100}

        connector.disconnect()
        assert not connector.keepalive_active
        sent = len(fake_client.keepalives)
        await asyncio.sleep(0.05)
        assert len(fake_client.keepalives) == sent

    asyncio.run(scenario())


def test_streaming_toggle_only_between_ready_and_streaming(fake_client, camera_params):
    async def scenario():
        events, sink = collect_events()
        connector = GatewayConnector("cam1", fake_client, on_event=sink)

        assert connector.mark_streaming() is False
        assert connector.state == ConnectorState.IDLE

        connector.connect_to_gateway(camera_params)
        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        events.clear()

        assert connector.mark_stopped() is False
        assert connector.mark_streaming() is True
        assert connector.state == ConnectorState.STREAMING
        assert connector.is_connected
        assert connector.mark_streaming() is False
        assert connector.mark_stopped() is True
        assert connector.state == ConnectorState.READY

        assert [e.type for e in events] == [
            ConnectorEventType.STREAMING_STARTED,
            ConnectorEventType.STREAMING_STOPPED,
        ]
        connector.disconnect()

    asyncio.run(scenario())


def test_destroy_emits_destroyed_and_blocks_reuse(fake_client, camera_params):
    async def scenario():
        events, sink = collect_events()
        connector = GatewayConnector("cam1", fake_client, on_event=sink)
        connector.connect_to_gateway(camera_params)
        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        events.clear()

        connector.destroy()
        connector.destroy()

        assert [e.type for e in events] == [
            ConnectorEventType.CONNECTION_STATE_CHANGED,
            ConnectorEventType.DESTROYED,
        ]
        assert connector.is_destroyed
        with pytest.raises(ConnectorError):
            connector.connect_to_gateway(camera_params)

    asyncio.run(scenario())


def test_event_sink_errors_do_not_break_the_handshake(fake_client, camera_params):
    async def scenario():
        def broken_sink(event):
            raise RuntimeError("sink failure")

        connector = GatewayConnector("cam1", fake_client, on_event=broken_sink)
        connector.connect_to_gateway(camera_params)
        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        connector.disconnect()
        assert connector.state == ConnectorState.IDLE

    asyncio.run(scenario())


def test_summary_reports_connector_state(fake_client, camera_params):
    async def scenario():
        connector = GatewayConnector("cam1", fake_client, mountpoint_id=9)
        connector.connect_to_gateway(camera_params)
        await connector.wait_for_state(ConnectorState.READY, timeout=2)

        summary = connector.to_summary()
        assert summary["camera_uuid"] == "cam1"
        assert summary["state"] == "READY"
        assert summary["mountpoint_id"] == 9
        assert summary["session_id"] == 100
        assert summary["gateway_url"] == fake_client.base_url
        connector.disconnect()

    asyncio.run(scenario())
