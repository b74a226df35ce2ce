"""
스트림 디렉터리

시청 페이지 생성에 필요한 카메라별 정보(파라미터, 마운트포인트 ID, 게이트웨이 URL)를 보관합니다.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from janus_streamer.common.logging import get_logger
from janus_streamer.domain.models.camera import CameraParameters
from janus_streamer.domain.models.connector import ConnectorEvent, ConnectorEventType

if TYPE_CHECKING:
    from janus_streamer.application.camera.registry import CameraRegistry

logger = get_logger(__name__)


@dataclass(frozen=True)
class StreamEntry:
    """디렉터리 항목"""

    params: CameraParameters
    mountpoint_id: int
    gateway_url: str
    registered_at: float = field(default_factory=time.time)

    @property
    def camera_uuid(self) -> str:
        return self.params.camera_uuid

    def to_dict(self) -> dict[str, Any]:
        return {
            "camera_uuid": self.camera_uuid,
            "room_name": self.params.room_name,
            "mountpoint_id": self.mountpoint_id,
            "gateway_url": self.gateway_url,
            "registered_at": self.registered_at,
        }


class StreamDirectory:
    """카메라 식별자 → 스트림 항목 저장소"""

    def __init__(self) -> None:
        self._entries: dict[str, StreamEntry] = {}
        self._lock = threading.RLock()

    def put(
        self,
        camera_uuid: str,
        params: CameraParameters,
        mountpoint_id: int,
        gateway_url: str,
    ) -> StreamEntry:
        entry = StreamEntry(params=params, mountpoint_id=mountpoint_id, gateway_url=gateway_url)
        with self._lock:
            self._entries[camera_uuid] = entry
        logger.info(
            f"스트림 등록: {camera_uuid}",
            camera_uuid=camera_uuid,
            mountpoint_id=mountpoint_id,
        )
        return entry

    def remove(self, camera_uuid: str, mountpoint_id: int | None = None) -> bool:
        """
        항목을 제거합니다.

        mountpoint_id를 주면 저장된 항목의 마운트포인트 ID가 같을 때만 제거합니다.
        """
        with self._lock:
            entry = self._entries.get(camera_uuid)
            if entry is None:
                return False
            if mountpoint_id is not None and entry.mountpoint_id != mountpoint_id:
                return False
            del self._entries[camera_uuid]

        logger.info(
            f"스트림 제거: {camera_uuid}",
            camera_uuid=camera_uuid,
            mountpoint_id=entry.mountpoint_id,
        )
        return True

    def get(self, camera_uuid: str) -> StreamEntry | None:
        with self._lock:
            return self._entries.get(camera_uuid)

    def list(self) -> list[StreamEntry]:
        with self._lock:
            return list(self._entries.values())

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {uuid: entry.to_dict() for uuid, entry in self._entries.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, camera_uuid: object) -> bool:
        with self._lock:
            return camera_uuid in self._entries


def make_directory_updater(
    directory: StreamDirectory,
    registry: "CameraRegistry",
    gateway_url: str,
) -> Callable[[ConnectorEvent], None]:
    """
    레지스트리 이벤트로 디렉터리를 갱신하는 콜백을 만듭니다.

    SESSION_READY → 등록, ERROR/DESTROYED → 마운트포인트 ID가 같을 때만 제거.
    gateway_url은 시청 페이지에 전달되는 (공개) 게이트웨이 주소입니다.
    """

    def _on_event(event: ConnectorEvent) -> None:
        if event.type == ConnectorEventType.SESSION_READY:
            connector = registry.get_connector(event.camera_uuid)
            if connector is None or connector.params is None:
                return
            directory.put(
                event.camera_uuid,
                connector.params,
                event.connector_id,
                gateway_url,
            )
        elif event.type in (ConnectorEventType.ERROR, ConnectorEventType.DESTROYED):
            directory.remove(event.camera_uuid, mountpoint_id=event.connector_id)

    return _on_event
