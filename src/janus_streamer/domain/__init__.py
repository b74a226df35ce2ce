"""
Domain Layer

순수 데이터 구조와 규칙을 정의합니다.
외부 라이브러리에 의존하지 않으며, 표준 라이브러리만 사용합니다.

구성 요소:
- models: 카메라 파라미터, 커넥터 상태/이벤트
"""

from janus_streamer.domain.models.camera import CameraParameters
from janus_streamer.domain.models.connector import (
    ConnectorEvent,
    ConnectorEventType,
    ConnectorState,
    SessionHandle,
)

__all__ = [
    "CameraParameters",
    "ConnectorEvent",
    "ConnectorEventType",
    "ConnectorState",
    "SessionHandle",
]
