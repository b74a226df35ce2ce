"""
Infrastructure Layer

외부 시스템과의 통신을 구현합니다.

구성 요소:
- gateway: Janus 게이트웨이 시그널링 클라이언트 (httpx)
"""

from janus_streamer.infrastructure.gateway import GatewaySignalingClient, MountpointOptions

__all__ = [
    "GatewaySignalingClient",
    "MountpointOptions",
]
