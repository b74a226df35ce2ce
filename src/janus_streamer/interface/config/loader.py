"""
설정 로더

config.json을 로드하고 Pydantic 스키마로 검증합니다.
환경변수로 일부 값을 덮어쓸 수 있습니다.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from janus_streamer.common.errors import ConfigError, ErrorCode
from janus_streamer.common.logging import get_logger
from janus_streamer.infrastructure.gateway.signaling_client import MountpointOptions

from .schema import AppConfig

logger = get_logger(__name__)


# 환경변수 → (섹션, 필드)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "HOST": ("server", "host"),
    "PORT": ("server", "port"),
    "JANUS_URL": ("gateway", "url"),
    "JANUS_PUBLIC_URL": ("gateway", "public_url"),
    "STREAM_AUTH_USER": ("auth", "username"),
    "STREAM_AUTH_PASSWORD": ("auth", "password"),
    "LOG_LEVEL": ("observability", "log_level"),
    "LOG_FORMAT": ("observability", "log_format"),
    "LOG_FILE": ("observability", "log_file"),
}


class ConfigLoader:
    """config.json 로딩 및 변환을 담당합니다."""

    def __init__(self, default_path: str = "config.json") -> None:
        self._default_path = Path(default_path)

    @property
    def default_path(self) -> Path:
        return self._default_path

    def load_from_file(self, path: str | Path | None = None) -> AppConfig:
        """파일에서 설정을 로드하고 검증합니다."""
        target = Path(path) if path else self._default_path

        if not target.exists():
            raise ConfigError(
                ErrorCode.CONFIG_NOT_FOUND,
                f"설정 파일을 찾을 수 없습니다: {target}",
                config_path=str(target),
            )

        try:
            content = target.read_text(encoding="utf-8")
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigError(
                ErrorCode.CONFIG_PARSE_ERROR,
                f"설정 파일 파싱에 실패했습니다: {e}",
                config_path=str(target),
                details={"error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise ConfigError(
                ErrorCode.CONFIG_PARSE_ERROR,
                "설정 파일의 최상위 값은 객체여야 합니다",
                config_path=str(target),
            )

        return self.load_from_dict(data, config_path=str(target))

    def load_from_dict(
        self,
        data: dict[str, Any],
        config_path: str | None = None,
    ) -> AppConfig:
        """딕셔너리에서 설정을 검증합니다."""
        try:
            return AppConfig.model_validate(data)
        except ValidationError as e:
            logger.error("설정 검증 실패", errors=e.errors(), config_path=config_path)
            raise ConfigError(
                ErrorCode.CONFIG_INVALID,
                "설정 검증에 실패했습니다",
                config_path=config_path,
                details={"errors": e.errors()},
            ) from e

    def apply_env_overrides(
        self,
        config: AppConfig,
        environ: Mapping[str, str] | None = None,
    ) -> AppConfig:
        """환경변수 값으로 설정을 덮어쓴 새 설정을 반환합니다."""
        env = os.environ if environ is None else environ
        data = config.model_dump()

        applied: list[str] = []
        for env_name, (section, field_name) in ENV_OVERRIDES.items():
            value = env.get(env_name)
            if value is None or value == "":
                continue
            data[section][field_name] = value
            applied.append(env_name)

        if not applied:
            return config

        logger.debug("환경변수 설정 적용", overrides=applied)
        return self.load_from_dict(data, config_path="<env>")

    def to_mountpoint_options(self, config: AppConfig) -> MountpointOptions:
        """마운트포인트 설정을 시그널링 클라이언트 옵션으로 변환합니다."""
        mp = config.mountpoint
        return MountpointOptions(
            audio=mp.audio,
            video=mp.video,
            permanent=mp.permanent,
            rtsp_reconnect_delay=mp.rtsp_reconnect_delay,
            rtsp_session_timeout=mp.rtsp_session_timeout,
            rtsp_timeout=mp.rtsp_timeout,
            rtsp_conn_timeout=mp.rtsp_conn_timeout,
        )
