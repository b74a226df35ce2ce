"""
공통 유틸리티 모듈

에러 처리, 로깅 등 전체 애플리케이션에서 사용하는 공통 기능을 제공합니다.
"""

from janus_streamer.common.errors import (
    StreamerError,
    CameraError,
    ConnectorError,
    GatewayError,
    TransportError,
    ProtocolError,
    AuthError,
    RenderError,
    ConfigError,
    ErrorCode,
    get_http_status,
)
from janus_streamer.common.logging import get_logger, configure_logging

__all__ = [
    # 에러
    "StreamerError",
    "CameraError",
    "ConnectorError",
    "GatewayError",
    "TransportError",
    "ProtocolError",
    "AuthError",
    "RenderError",
    "ConfigError",
    "ErrorCode",
    "get_http_status",
    # 로깅
    "get_logger",
    "configure_logging",
]
