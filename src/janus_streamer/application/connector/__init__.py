"""
게이트웨이 커넥터 모듈

카메라별 세션/마운트포인트 생명주기를 담당합니다.
"""

from janus_streamer.application.connector.connector import (
    GatewayConnector,
    SignalingClientProtocol,
)

__all__ = ["GatewayConnector", "SignalingClientProtocol"]
