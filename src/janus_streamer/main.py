"""
janus-streamer 진입점

설정 로드, 컴포넌트 배선, FastAPI 서버 시작을 담당합니다.
"""

from __future__ import annotations

import os
import sys

from fastapi import FastAPI

from janus_streamer.application.camera.registry import CameraRegistry
from janus_streamer.application.stream.directory import StreamDirectory, make_directory_updater
from janus_streamer.common.errors import ConfigError, ErrorCode
from janus_streamer.common.logging import configure_logging, get_logger
from janus_streamer.infrastructure.gateway.signaling_client import GatewaySignalingClient
from janus_streamer.interface.api.app import create_app
from janus_streamer.interface.api.dependencies import AppContext, set_app_context
from janus_streamer.interface.config.loader import ConfigLoader
from janus_streamer.interface.config.schema import AppConfig
from janus_streamer.interface.viewer.renderer import ViewerRenderer

logger = get_logger(__name__)


def load_config(config_path: str) -> AppConfig:
    """
    설정을 로드합니다.

    파일이 없으면 기본값을 사용하고, 마지막으로 환경변수를 적용합니다.
    """
    loader = ConfigLoader(config_path)
    try:
        config = loader.load_from_file()
        logger.info("설정 로드 완료", config_path=config_path)
    except ConfigError as e:
        if e.code != ErrorCode.CONFIG_NOT_FOUND:
            raise
        logger.warning(f"설정 파일이 없어 기본값을 사용합니다: {config_path}")
        config = loader.load_from_dict({})
    return loader.apply_env_overrides(config)


def initialize_components(
    config: AppConfig,
    signaling_client: GatewaySignalingClient | None = None,
) -> AppContext:
    """
    컴포넌트를 생성하고 연결합니다.

    시그널링 클라이언트 → 레지스트리 → (이벤트) → 스트림 디렉터리
    """
    loader = ConfigLoader()

    # 1. 게이트웨이 시그널링 클라이언트
    if signaling_client is None:
        signaling_client = GatewaySignalingClient(
            base_url=config.gateway.url,
            timeout_seconds=config.gateway.request_timeout_seconds,
            plugin=config.gateway.plugin,
            mountpoint_options=loader.to_mountpoint_options(config),
        )

    # 2. 카메라 레지스트리
    registry = CameraRegistry(
        signaling_client,
        keepalive_interval=config.gateway.keepalive_interval_seconds,
        auto_start_streaming=config.streaming.auto_start,
        auto_start_delay=config.streaming.auto_start_delay_seconds,
    )

    # 3. 스트림 디렉터리 (레지스트리 이벤트로 갱신)
    directory = StreamDirectory()
    registry.set_on_event(
        make_directory_updater(directory, registry, config.gateway.viewer_url)
    )

    # 4. 시청 페이지 렌더러
    renderer = ViewerRenderer(
        title=config.viewer.title,
        script_urls=config.viewer.script_urls,
    )

    logger.info(
        "컴포넌트 초기화 완료",
        gateway_url=config.gateway.url,
        viewer_gateway_url=config.gateway.viewer_url,
        auto_start=config.streaming.auto_start,
    )

    return AppContext(
        registry=registry,
        directory=directory,
        signaling_client=signaling_client,
        renderer=renderer,
        config=config,
    )


def build_app(
    config: AppConfig,
    signaling_client: GatewaySignalingClient | None = None,
) -> FastAPI:
    """설정으로 FastAPI 앱을 만들고 의존성을 주입합니다."""
    app = create_app()
    set_app_context(app, initialize_components(config, signaling_client))
    return app


def main() -> None:
    """메인 진입점."""
    import uvicorn

    # 설정 파일 경로 (환경변수 또는 기본값)
    config_path = os.getenv("CONFIG_PATH", "config.json")

    try:
        config = load_config(config_path)

        observability = config.observability
        configure_logging(
            level=observability.log_level,
            json_output=observability.log_format == "json",
            log_file=observability.log_file,
        )

        app = build_app(config)

        host = config.server.host
        port = config.server.port
        logger.info(f"서버 시작: http://{host}:{port}")

        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level="info",
        )

    except KeyboardInterrupt:
        logger.info("사용자 중단")
    except Exception as e:
        logger.exception("초기화 오류", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
