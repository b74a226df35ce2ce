"""
FastAPI dependency wiring.

Interface 계층에서 사용할 의존성을 관리합니다.
Composition Root(main.py)에서 set_app_context로 주입합니다.
"""

from __future__ import annotations

import base64
import binascii
import secrets
from dataclasses import dataclass

from fastapi import Depends, FastAPI, Request

from janus_streamer.application.camera.registry import CameraRegistry
from janus_streamer.application.stream.directory import StreamDirectory
from janus_streamer.common.errors import AuthError
from janus_streamer.infrastructure.gateway.signaling_client import GatewaySignalingClient
from janus_streamer.interface.config.schema import AppConfig, AuthConfig
from janus_streamer.interface.viewer.renderer import ViewerRenderer


@dataclass
class AppContext:
    registry: CameraRegistry
    directory: StreamDirectory
    signaling_client: GatewaySignalingClient
    renderer: ViewerRenderer
    config: AppConfig


def set_app_context(app: FastAPI, context: AppContext) -> None:
    """FastAPI app.state에 AppContext를 저장합니다"""
    app.state.app_context = context


def get_app_context(request: Request) -> AppContext:
    context: AppContext | None = getattr(request.app.state, "app_context", None)
    if context is None:
        raise RuntimeError("AppContext가 설정되지 않았습니다")
    return context


def get_registry(context: AppContext = Depends(get_app_context)) -> CameraRegistry:
    return context.registry


def get_directory(context: AppContext = Depends(get_app_context)) -> StreamDirectory:
    return context.directory


def get_renderer(context: AppContext = Depends(get_app_context)) -> ViewerRenderer:
    return context.renderer


def get_config(context: AppContext = Depends(get_app_context)) -> AppConfig:
    return context.config


def parse_basic_auth(header: str | None) -> tuple[str, str] | None:
    """
    Authorization 헤더에서 Basic 자격 증명을 추출합니다.

    형식이 잘못되었으면 None을 반환합니다. 비밀번호에는 ':'가 포함될 수 있습니다.
    """
    if not header:
        return None

    scheme, _, payload = header.strip().partition(" ")
    if scheme.lower() != "basic" or not payload.strip():
        return None

    try:
        decoded = base64.b64decode(payload.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


def check_viewer_auth(authorization: str | None, auth: AuthConfig) -> None:
    """
    시청 페이지 Basic 인증.
    auth.password가 설정되지 않으면 인증을 요구하지 않습니다.

    Raises:
        AuthError: 자격 증명이 없거나 일치하지 않음
    """
    if not auth.enabled:
        return

    credentials = parse_basic_auth(authorization)
    if credentials is None:
        raise AuthError("인증이 필요합니다", realm=auth.realm)

    username, password = credentials
    user_ok = secrets.compare_digest(username.encode("utf-8"), auth.username.encode("utf-8"))
    pass_ok = secrets.compare_digest(
        password.encode("utf-8"), (auth.password or "").encode("utf-8")
    )
    if not (user_ok and pass_ok):
        raise AuthError("인증 정보가 올바르지 않습니다", realm=auth.realm)
