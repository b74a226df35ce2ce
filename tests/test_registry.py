import asyncio

import pytest

from conftest import collect_events, make_params
from janus_streamer.application.camera.registry import CameraRegistry
from janus_streamer.common.errors import CameraError, ErrorCode
from janus_streamer.domain.models.connector import (
    ConnectorEvent,
    ConnectorEventType,
    ConnectorState,
)


def test_register_starts_handshake_immediately(fake_client):
    async def scenario():
        registry = CameraRegistry(fake_client)
        connector = registry.register(make_params("cam1"))

        assert connector.state == ConnectorState.CREATING_SESSION
        assert registry.get_connector("cam1") is connector
        assert "cam1" in registry
        assert len(registry) == 1

        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        assert (connector.session_id, connector.handle_id) == (100, 200)
        registry.unregister_all()

    asyncio.run(scenario())


def test_reregistration_leaves_exactly_one_connector(fake_client):
    async def scenario():
        registry = CameraRegistry(fake_client, keepalive_interval=0.01)
        first = registry.register(make_params("cam1"))
        await first.wait_for_state(ConnectorState.READY, timeout=2)

        second = registry.register(make_params("cam1", room_name="Hall"))
        sent_before = len(fake_client.keepalives)

        assert len(registry) == 1
        assert registry.get_connector("cam1") is second
        assert first.is_destroyed
        assert first.state == ConnectorState.IDLE
        assert first.session_id == 0
        assert not first.keepalive_active
        assert first.mountpoint_id != second.mountpoint_id

        await second.wait_for_state(ConnectorState.READY, timeout=2)
        assert second.session_id == 101

        # the first session's keep-alive no longer fires
        await asyncio.sleep(0.05)
        assert set(fake_client.keepalives[sent_before:]) == {101}
        registry.unregister_all()

    asyncio.run(scenario())


def test_reregistration_during_handshake_cancels_previous(fake_client):
    async def scenario():
        fake_client.hold("attach_plugin")
        registry = CameraRegistry(fake_client)
        first = registry.register(make_params("cam1"))
        await first.wait_for_state(ConnectorState.ATTACHING_PLUGIN, timeout=2)

        fake_client.release("attach_plugin")
        second = registry.register(make_params("cam1"))
        await second.wait_for_state(ConnectorState.READY, timeout=2)

        assert first.state == ConnectorState.IDLE
        assert registry.get_connector("cam1") is second
        registry.unregister_all()

    asyncio.run(scenario())


def test_mountpoint_ids_are_distinct_across_live_connectors(fake_client):
    async def scenario():
        registry = CameraRegistry(fake_client)
        connectors = [registry.register(make_params(f"cam{i}")) for i in range(5)]
        ids = [c.mountpoint_id for c in connectors]
        assert len(set(ids)) == len(ids)
        registry.unregister_all()

    asyncio.run(scenario())


def test_events_are_forwarded_with_identity(fake_client):
    async def scenario():
        events, sink = collect_events()
        registry = CameraRegistry(fake_client)
        registry.set_on_event(sink)

        connector = registry.register(make_params("cam1"))
        await connector.wait_for_state(ConnectorState.READY, timeout=2)

        assert [e.type for e in events] == [
            ConnectorEventType.SESSION_READY,
            ConnectorEventType.CONNECTION_STATE_CHANGED,
        ]
        assert all(e.camera_uuid == "cam1" for e in events)
        assert all(e.connector_id == connector.connector_id for e in events)
        registry.unregister_all()

    asyncio.run(scenario())


def test_replacement_forwards_destroyed_of_previous_connector(fake_client):
    async def scenario():
        events, sink = collect_events()
        registry = CameraRegistry(fake_client)
        registry.set_on_event(sink)

        first = registry.register(make_params("cam1"))
        await first.wait_for_state(ConnectorState.READY, timeout=2)
        events.clear()

        registry.register(make_params("cam1"))

        destroyed = [e for e in events if e.type == ConnectorEventType.DESTROYED]
        assert len(destroyed) == 1
        assert destroyed[0].connector_id == first.connector_id
        # the old connector's disconnect notification is stale once it has been replaced
        assert not [
            e for e in events
            if e.type == ConnectorEventType.CONNECTION_STATE_CHANGED and e.connector_id == first.connector_id
        ]
        registry.unregister_all()

    asyncio.run(scenario())


def test_stale_events_are_dropped(fake_client):
    async def scenario():
        events, sink = collect_events()
        registry = CameraRegistry(fake_client)
        registry.set_on_event(sink)
        current = registry.register(make_params("cam1"))
        await current.wait_for_state(ConnectorState.READY, timeout=2)
        events.clear()

        stale = ConnectorEvent(
            type=ConnectorEventType.SESSION_READY,
            camera_uuid="cam1",
            connector_id=current.connector_id + 1000,
            session_id=1,
            handle_id=2,
        )
        registry._handle_connector_event(stale)

        assert events == []
        assert registry.get_stats()["stale_event_count"] == 1
        registry.unregister_all()

    asyncio.run(scenario())


def test_unregister_and_unregister_all(fake_client):
    async def scenario():
        events, sink = collect_events()
        registry = CameraRegistry(fake_client)
        registry.set_on_event(sink)
        a = registry.register(make_params("a"))
        b = registry.register(make_params("b"))

        assert registry.unregister("a") is True
        assert registry.unregister("a") is False
        assert a.is_destroyed
        assert "a" not in registry

        assert registry.unregister_all() == 1
        assert b.is_destroyed
        assert len(registry) == 0
        assert {e.camera_uuid for e in events if e.type == ConnectorEventType.DESTROYED} == {"a", "b"}

    asyncio.run(scenario())


def test_invalid_parameters_are_rejected(fake_client):
    async def scenario():
        registry = CameraRegistry(fake_client)
        with pytest.raises(CameraError) as exc_info:
            registry.register(make_params("cam1", ip_port=""))
        assert exc_info.value.code == ErrorCode.INVALID_PARAMETERS
        assert len(registry) == 0

    asyncio.run(scenario())


def test_failed_connector_stays_registered_in_idle(fake_client):
    async def scenario():
        fake_client.fail_on = "create_session"
        events, sink = collect_events()
        registry = CameraRegistry(fake_client)
        registry.set_on_event(sink)

        connector = registry.register(make_params("cam1"))
        await asyncio.sleep(0.01)

        assert registry.get_connector("cam1") is connector
        assert connector.state == ConnectorState.IDLE
        assert [e.type for e in events] == [ConnectorEventType.ERROR]
        assert registry.get_stats()["error_count"] == 1
        registry.unregister_all()

    asyncio.run(scenario())


def test_start_and_stop_streaming(fake_client):
    async def scenario():
        registry = CameraRegistry(fake_client)
        connector = registry.register(make_params("cam1"))
        await connector.wait_for_state(ConnectorState.READY, timeout=2)

        assert registry.start_streaming("cam1") is True
        assert connector.state == ConnectorState.STREAMING
        assert registry.stop_streaming("cam1") is True
        assert connector.state == ConnectorState.READY

        with pytest.raises(CameraError) as exc_info:
            registry.start_streaming("missing")
        assert exc_info.value.code == ErrorCode.CAMERA_NOT_FOUND
        registry.unregister_all()

    asyncio.run(scenario())


def test_auto_start_marks_streaming_after_delay(fake_client):
    async def scenario():
        registry = CameraRegistry(fake_client, auto_start_streaming=True, auto_start_delay=0.01)
        connector = registry.register(make_params("cam1"))
        await connector.wait_for_state(ConnectorState.READY, timeout=2)

        await connector.wait_for_state(ConnectorState.STREAMING, timeout=2)
        registry.unregister_all()

    asyncio.run(scenario())


def test_auto_start_is_cancelled_by_replacement(fake_client):
    async def scenario():
        registry = CameraRegistry(fake_client, auto_start_streaming=True, auto_start_delay=0.05)
        first = registry.register(make_params("cam1"))
        await first.wait_for_state(ConnectorState.READY, timeout=2)

        fake_client.hold("create_session")
        second = registry.register(make_params("cam1"))
        await asyncio.sleep(0.1)

        assert first.state == ConnectorState.IDLE
        assert second.state == ConnectorState.CREATING_SESSION
        registry.unregister_all()

    asyncio.run(scenario())


def test_auto_start_is_off_by_default(fake_client):
    async def scenario():
        registry = CameraRegistry(fake_client, auto_start_delay=0.0)
        connector = registry.register(make_params("cam1"))
        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        await asyncio.sleep(0.02)
        assert connector.state == ConnectorState.READY
        registry.unregister_all()

    asyncio.run(scenario())


def test_stats_summarise_connectors(fake_client):
    async def scenario():
        registry = CameraRegistry(fake_client)
        connector = registry.register(make_params("cam1"))
        await connector.wait_for_state(ConnectorState.READY, timeout=2)
        registry.register(make_params("cam2"))

        stats = registry.get_stats()
        assert stats["active_connectors"] == 2
        assert stats["registered_count"] == 2
        assert stats["ready_count"] >= 1
        assert {c["camera_uuid"] for c in stats["connectors"]} == {"cam1", "cam2"}
        registry.unregister_all()

    asyncio.run(scenario())
