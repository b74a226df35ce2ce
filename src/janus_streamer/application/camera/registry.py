"""
카메라 레지스트리

카메라 식별자별로 게이트웨이 커넥터를 하나씩 소유하고 생명주기를 관리합니다.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Callable

from janus_streamer.application.connector.connector import (
    EventCallback,
    GatewayConnector,
    SignalingClientProtocol,
)
from janus_streamer.common.errors import CameraError, ErrorCode
from janus_streamer.common.logging import get_logger
from janus_streamer.domain.models.camera import CameraParameters
from janus_streamer.domain.models.connector import ConnectorEvent, ConnectorEventType

logger = get_logger(__name__)

ConnectorFactory = Callable[[str, EventCallback], GatewayConnector]


class CameraRegistry:
    """
    카메라 레지스트리

    - 같은 식별자로 재등록하면 기존 커넥터를 먼저 해제/폐기한 뒤 새 커넥터를 만듭니다.
    - 커넥터 이벤트는 현재 저장된 커넥터가 보낸 것일 때만 상위로 전달합니다.
      DESTROYED는 맵에서 조건부로 제거한 뒤 항상 전달합니다.
    - 맵은 구조 변경 시에만 잠급니다. 네트워크 호출 동안에는 잠그지 않습니다.
    """

    def __init__(
        self,
        signaling_client: SignalingClientProtocol,
        keepalive_interval: float = GatewayConnector.KEEPALIVE_INTERVAL_SECONDS,
        auto_start_streaming: bool = False,
        auto_start_delay: float = 1.0,
        connector_factory: ConnectorFactory | None = None,
    ) -> None:
        self._client = signaling_client
        self._keepalive_interval = keepalive_interval
        self._auto_start_streaming = auto_start_streaming
        self._auto_start_delay = auto_start_delay
        self._connector_factory = connector_factory

        self._connectors: dict[str, GatewayConnector] = {}
        self._auto_start_handles: dict[str, asyncio.TimerHandle] = {}
        self._lock = threading.RLock()
        self._on_event: Callable[[ConnectorEvent], None] | None = None

        self._registered_count = 0
        self._replaced_count = 0
        self._ready_count = 0
        self._error_count = 0
        self._stale_event_count = 0

    def set_on_event(self, callback: Callable[[ConnectorEvent], None] | None) -> None:
        """커넥터 이벤트를 받을 콜백을 설정합니다."""
        self._on_event = callback

    def register(self, params: CameraParameters) -> GatewayConnector:
        """
        카메라를 등록하고 게이트웨이 핸드셰이크를 시작합니다.

        Raises:
            CameraError: 파라미터가 유효하지 않음
        """
        if not params.is_valid:
            raise CameraError(
                ErrorCode.INVALID_PARAMETERS,
                "camera_uuid와 ip_port는 필수입니다",
                camera_uuid=params.camera_uuid,
            )

        camera_uuid = params.camera_uuid

        with self._lock:
            previous = self._connectors.pop(camera_uuid, None)
            self._cancel_auto_start(camera_uuid)

            if previous is not None:
                logger.info(
                    f"기존 커넥터 교체: {camera_uuid}",
                    camera_uuid=camera_uuid,
                    previous_mountpoint_id=previous.mountpoint_id,
                    previous_state=previous.state.value,
                )
                previous.destroy()
                self._replaced_count += 1

            connector = self._create_connector(camera_uuid)
            self._connectors[camera_uuid] = connector

            try:
                connector.connect_to_gateway(params)
            except Exception:
                if self._connectors.get(camera_uuid) is connector:
                    del self._connectors[camera_uuid]
                connector.destroy()
                raise

            self._registered_count += 1

        logger.info(
            f"카메라 등록: {camera_uuid}",
            camera_uuid=camera_uuid,
            mountpoint_id=connector.mountpoint_id,
            room_name=params.room_name,
        )
        return connector

    def unregister(self, camera_uuid: str) -> bool:
        """카메라 커넥터를 해제/폐기합니다. 없으면 False를 반환합니다."""
        with self._lock:
            connector = self._connectors.pop(camera_uuid, None)
            self._cancel_auto_start(camera_uuid)

        if connector is None:
            return False

        connector.destroy()
        logger.info(f"카메라 등록 해제: {camera_uuid}", camera_uuid=camera_uuid)
        return True

    def unregister_all(self) -> int:
        """모든 커넥터를 해제/폐기합니다 (종료 시 사용)."""
        with self._lock:
            connectors = list(self._connectors.values())
            self._connectors.clear()
            for camera_uuid in list(self._auto_start_handles):
                self._cancel_auto_start(camera_uuid)

        for connector in connectors:
            connector.destroy()

        if connectors:
            logger.info(f"전체 카메라 등록 해제: {len(connectors)}개")
        return len(connectors)

    def get_connector(self, camera_uuid: str) -> GatewayConnector | None:
        with self._lock:
            return self._connectors.get(camera_uuid)

    def get_all_connectors(self) -> list[GatewayConnector]:
        with self._lock:
            return list(self._connectors.values())

    def start_streaming(self, camera_uuid: str) -> bool:
        """READY 상태의 커넥터를 STREAMING으로 표시합니다."""
        return self._require_connector(camera_uuid).mark_streaming()

    def stop_streaming(self, camera_uuid: str) -> bool:
        """STREAMING 상태의 커넥터를 READY로 되돌립니다."""
        return self._require_connector(camera_uuid).mark_stopped()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connectors)

    def __contains__(self, camera_uuid: object) -> bool:
        with self._lock:
            return camera_uuid in self._connectors

    def _require_connector(self, camera_uuid: str) -> GatewayConnector:
        connector = self.get_connector(camera_uuid)
        if connector is None:
            raise CameraError(
                ErrorCode.CAMERA_NOT_FOUND,
                f"등록되지 않은 카메라입니다: {camera_uuid}",
                camera_uuid=camera_uuid,
            )
        return connector

    def _create_connector(self, camera_uuid: str) -> GatewayConnector:
        if self._connector_factory is not None:
            return self._connector_factory(camera_uuid, self._handle_connector_event)
        return GatewayConnector(
            camera_uuid,
            self._client,
            on_event=self._handle_connector_event,
            keepalive_interval=self._keepalive_interval,
        )

    def _handle_connector_event(self, event: ConnectorEvent) -> None:
        camera_uuid = event.camera_uuid

        with self._lock:
            current = self._connectors.get(camera_uuid)
            is_current = current is not None and current.connector_id == event.connector_id

            if event.type == ConnectorEventType.DESTROYED and is_current:
                del self._connectors[camera_uuid]
                self._cancel_auto_start(camera_uuid)

            if is_current and event.type == ConnectorEventType.SESSION_READY:
                self._ready_count += 1
                if self._auto_start_streaming:
                    self._schedule_auto_start(camera_uuid, event.connector_id)
            elif is_current and event.type == ConnectorEventType.ERROR:
                self._error_count += 1

            if not is_current and event.type != ConnectorEventType.DESTROYED:
                self._stale_event_count += 1

        if not is_current and event.type != ConnectorEventType.DESTROYED:
            logger.debug(
                "교체된 커넥터 이벤트 무시",
                camera_uuid=camera_uuid,
                connector_id=event.connector_id,
                event_type=event.type.value,
            )
            return

        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception:
            logger.exception(
                "이벤트 처리 콜백 오류",
                camera_uuid=camera_uuid,
                event_type=event.type.value,
            )

    def _schedule_auto_start(self, camera_uuid: str, connector_id: int) -> None:
        loop = asyncio.get_running_loop()
        self._cancel_auto_start(camera_uuid)
        self._auto_start_handles[camera_uuid] = loop.call_later(
            self._auto_start_delay,
            self._auto_start,
            camera_uuid,
            connector_id,
        )

    def _auto_start(self, camera_uuid: str, connector_id: int) -> None:
        with self._lock:
            self._auto_start_handles.pop(camera_uuid, None)
            connector = self._connectors.get(camera_uuid)
        if connector is None or connector.connector_id != connector_id:
            return
        connector.mark_streaming()

    def _cancel_auto_start(self, camera_uuid: str) -> None:
        handle = self._auto_start_handles.pop(camera_uuid, None)
        if handle is not None:
            handle.cancel()

    def get_stats(self) -> dict[str, Any]:
        """레지스트리 통계를 반환합니다."""
        with self._lock:
            connectors = [c.to_summary() for c in self._connectors.values()]
            return {
                "active_connectors": len(connectors),
                "registered_count": self._registered_count,
                "replaced_count": self._replaced_count,
                "ready_count": self._ready_count,
                "error_count": self._error_count,
                "stale_event_count": self._stale_event_count,
                "auto_start_streaming": self._auto_start_streaming,
                "connectors": connectors,
            }
