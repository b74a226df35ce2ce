"""
카메라 관리 모듈

카메라 식별자와 게이트웨이 커넥터의 매핑을 관리합니다.
"""

from janus_streamer.application.camera.registry import CameraRegistry

__all__ = ["CameraRegistry"]
