"""
데이터 모델 모듈

카메라 파라미터, 커넥터 상태/이벤트 등 핵심 데이터 구조를 정의합니다.
"""

from janus_streamer.domain.models.camera import (
    CameraParameters,
    MountpointIdAllocator,
    build_rtsp_url,
    next_mountpoint_id,
)
from janus_streamer.domain.models.connector import (
    ConnectorEvent,
    ConnectorEventType,
    ConnectorState,
    SessionHandle,
    is_transition_allowed,
)

__all__ = [
    # 카메라
    "CameraParameters",
    "MountpointIdAllocator",
    "build_rtsp_url",
    "next_mountpoint_id",
    # 커넥터
    "ConnectorEvent",
    "ConnectorEventType",
    "ConnectorState",
    "SessionHandle",
    "is_transition_allowed",
]
