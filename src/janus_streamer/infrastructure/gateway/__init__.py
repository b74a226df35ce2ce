# -*- coding: utf-8 -*-
"""
Gateway Infrastructure 패키지.

Janus 게이트웨이 HTTP 시그널링 클라이언트를 담당합니다.
"""

from janus_streamer.infrastructure.gateway.signaling_client import (
    GatewaySignalingClient,
    MountpointOptions,
    build_mountpoint_body,
)

__all__ = [
    "GatewaySignalingClient",
    "MountpointOptions",
    "build_mountpoint_body",
]
