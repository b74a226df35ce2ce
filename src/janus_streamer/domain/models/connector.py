"""
커넥터 모델

게이트웨이 커넥터의 상태, 세션 핸들, 생명주기 이벤트를 정의합니다.
이 모듈은 외부 라이브러리에 의존하지 않습니다.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ConnectorState(str, Enum):
    """
    커넥터 상태

    성공 시에만 순서대로 전진하며, 실패나 disconnect 시에는 IDLE로 복귀합니다.
    """

    IDLE = "IDLE"                                   # 초기/리셋 상태
    CREATING_SESSION = "CREATING_SESSION"           # 세션 생성 중
    ATTACHING_PLUGIN = "ATTACHING_PLUGIN"           # 스트리밍 플러그인 연결 중
    CREATING_MOUNTPOINT = "CREATING_MOUNTPOINT"     # 마운트포인트 생성 중
    READY = "READY"                                 # 시청 준비 완료
    STREAMING = "STREAMING"                         # 시청 중


# 허용되는 전이 (IDLE로의 전이는 모든 상태에서 허용)
ALLOWED_TRANSITIONS: dict[ConnectorState, frozenset[ConnectorState]] = {
    ConnectorState.IDLE: frozenset({ConnectorState.CREATING_SESSION}),
    ConnectorState.CREATING_SESSION: frozenset({ConnectorState.ATTACHING_PLUGIN}),
    ConnectorState.ATTACHING_PLUGIN: frozenset({ConnectorState.CREATING_MOUNTPOINT}),
    ConnectorState.CREATING_MOUNTPOINT: frozenset({ConnectorState.READY}),
    ConnectorState.READY: frozenset({ConnectorState.STREAMING}),
    ConnectorState.STREAMING: frozenset({ConnectorState.READY}),
}


def is_transition_allowed(current: ConnectorState, target: ConnectorState) -> bool:
    """current → target 전이가 허용되는지 확인합니다."""
    if target == ConnectorState.IDLE:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class SessionHandle:
    """
    게이트웨이 세션 핸들

    할당 전에는 0이며, 마운트포인트 생성 전에 둘 다 양수여야 합니다.
    """

    session_id: int = 0
    handle_id: int = 0

    @property
    def has_session(self) -> bool:
        return self.session_id > 0

    @property
    def is_complete(self) -> bool:
        """세션과 플러그인 핸들이 모두 할당되었는지 여부"""
        return self.session_id > 0 and self.handle_id > 0


class ConnectorEventType(str, Enum):
    """커넥터 생명주기 이벤트 타입"""

    SESSION_READY = "SESSION_READY"
    CONNECTION_STATE_CHANGED = "CONNECTION_STATE_CHANGED"
    STREAMING_STARTED = "STREAMING_STARTED"
    STREAMING_STOPPED = "STREAMING_STOPPED"
    ERROR = "ERROR"
    DESTROYED = "DESTROYED"


@dataclass(frozen=True)
class ConnectorEvent:
    """
    커넥터 생명주기 이벤트

    발신 커넥터를 역추적하지 않도록 카메라 식별자와 커넥터 ID(마운트포인트 ID)를
    명시적으로 포함합니다.

    Attributes:
        type: 이벤트 타입
        camera_uuid: 카메라 식별자
        connector_id: 발신 커넥터 ID
        session_id: 게이트웨이 세션 ID (SESSION_READY)
        handle_id: 플러그인 핸들 ID (SESSION_READY)
        connected: 연결 여부 (CONNECTION_STATE_CHANGED)
        error: 오류 사유 (ERROR)
        timestamp: 발생 시각
    """

    type: ConnectorEventType
    camera_uuid: str
    connector_id: int
    session_id: int = 0
    handle_id: int = 0
    connected: bool | None = None
    error: str | None = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        data: dict[str, Any] = {
            "type": self.type.value,
            "camera_uuid": self.camera_uuid,
            "connector_id": self.connector_id,
            "timestamp": self.timestamp,
        }
        if self.type == ConnectorEventType.SESSION_READY:
            data["session_id"] = self.session_id
            data["handle_id"] = self.handle_id
        if self.connected is not None:
            data["connected"] = self.connected
        if self.error is not None:
            data["error"] = self.error
        return data
