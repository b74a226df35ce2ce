"""
janus-streamer - 카메라 등록 요청을 받아 Janus WebRTC 게이트웨이에 스트리밍 마운트포인트를 구성하는 서비스

HTTP로 카메라 등록 요청을 받아 카메라별 게이트웨이 커넥터를 구동하고,
카메라별 WebRTC 뷰어 페이지를 제공합니다.
"""

__version__ = "0.1.0"
__author__ = "janus-streamer Team"

from janus_streamer.common.errors import (
    StreamerError,
    CameraError,
    GatewayError,
    ConfigError,
    ErrorCode,
)
from janus_streamer.common.logging import get_logger

__all__ = [
    "__version__",
    "StreamerError",
    "CameraError",
    "GatewayError",
    "ConfigError",
    "ErrorCode",
    "get_logger",
]
