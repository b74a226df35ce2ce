"""
Application Layer

카메라 등록과 게이트웨이 세션 오케스트레이션을 구현합니다.
Domain Layer와 시그널링 클라이언트 인터페이스만 참조하며, Interface Layer에 의존하지 않습니다.

구성 요소:
- connector: 카메라별 게이트웨이 상태 머신
- camera: 카메라 레지스트리
- stream: 스트림 디렉터리
"""

from janus_streamer.application.connector.connector import GatewayConnector
from janus_streamer.application.camera.registry import CameraRegistry
from janus_streamer.application.stream.directory import StreamDirectory

__all__ = [
    "GatewayConnector",
    "CameraRegistry",
    "StreamDirectory",
]
