"""
설정 스키마 (Pydantic v2)

config.json을 검증하기 위한 스키마를 정의합니다.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Pydantic 모델은 Interface Layer에서만 외부 라이브러리에 의존합니다.


class GatewayConfig(BaseModel):
    """게이트웨이(Janus) 연결 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    url: str = Field("http://localhost:8088/janus", description="시그널링 API 기본 URL")
    public_url: str | None = Field(None, description="시청 페이지에 전달할 URL (None이면 url 사용)")
    request_timeout_seconds: float = Field(10.0, description="요청별 타임아웃 (초)")
    keepalive_interval_seconds: float = Field(30.0, description="keep-alive 주기 (초)")
    plugin: str = Field("janus.plugin.streaming", description="연결할 플러그인")

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("gateway.url은 http:// 또는 https://로 시작해야 합니다")
        return value.rstrip("/")

    @field_validator("request_timeout_seconds", "keepalive_interval_seconds")
    @classmethod
    def validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("시간 값은 0보다 커야 합니다")
        return value

    @property
    def viewer_url(self) -> str:
        """시청 페이지에서 사용할 게이트웨이 URL"""
        return self.public_url or self.url


class MountpointConfig(BaseModel):
    """마운트포인트 생성 옵션."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    audio: bool = Field(True, description="오디오 포함 여부")
    video: bool = Field(True, description="비디오 포함 여부")
    permanent: bool = Field(False, description="게이트웨이 설정 파일에 영구 저장 여부")
    rtsp_reconnect_delay: int = Field(5, description="RTSP 재연결 대기 (초)")
    rtsp_session_timeout: int = Field(0, description="RTSP 세션 타임아웃 (초, 0이면 기본값)")
    rtsp_timeout: int = Field(10, description="RTSP 요청 타임아웃 (초)")
    rtsp_conn_timeout: int = Field(5, description="RTSP 연결 타임아웃 (초)")

    @model_validator(mode="after")
    def validate_values(self) -> "MountpointConfig":
        if not self.audio and not self.video:
            raise ValueError("audio와 video 중 하나는 활성화되어야 합니다")
        if self.rtsp_reconnect_delay < 0:
            raise ValueError("rtsp_reconnect_delay는 0 이상이어야 합니다")
        if self.rtsp_session_timeout < 0:
            raise ValueError("rtsp_session_timeout은 0 이상이어야 합니다")
        if self.rtsp_timeout < 1:
            raise ValueError("rtsp_timeout은 1 이상이어야 합니다")
        if self.rtsp_conn_timeout < 1:
            raise ValueError("rtsp_conn_timeout은 1 이상이어야 합니다")
        return self


class CameraDefaultsConfig(BaseModel):
    """카메라 등록 시 적용되는 기본값."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    rtsp_user: str = Field("admin", description="기본 RTSP 사용자")
    rtsp_password: str = Field("", description="기본 RTSP 비밀번호")
    rtsp_path: str = Field("/main", description="RTSP 경로")

    @field_validator("rtsp_path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        if value and not value.startswith("/"):
            value = "/" + value
        return value


class ServerConfig(BaseModel):
    """수신 HTTP 서버 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    host: str = Field("0.0.0.0", description="바인딩 호스트")
    port: int = Field(8080, description="바인딩 포트")

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError("port는 1~65535 범위여야 합니다")
        return value


class AuthConfig(BaseModel):
    """시청 페이지 Basic 인증 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    username: str = Field("admin", description="사용자 이름")
    password: str | None = Field(None, description="비밀번호 (없으면 인증 비활성화)")
    realm: str = Field("Stream Access", description="WWW-Authenticate realm")

    @property
    def enabled(self) -> bool:
        return bool(self.password)


class StreamingConfig(BaseModel):
    """READY 이후 시청 단계 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    auto_start: bool = Field(False, description="READY 후 자동으로 STREAMING 표시")
    auto_start_delay_seconds: float = Field(1.0, description="자동 시작 지연 (초)")

    @field_validator("auto_start_delay_seconds")
    @classmethod
    def validate_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("auto_start_delay_seconds는 0 이상이어야 합니다")
        return value


class ViewerConfig(BaseModel):
    """시청 페이지 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    title: str = Field("Live Stream", description="페이지 제목 접두어")
    script_urls: list[str] = Field(
        default_factory=lambda: [
            "https://cdnjs.cloudflare.com/ajax/libs/webrtc-adapter/8.2.3/adapter.min.js",
            "https://cdn.jsdelivr.net/npm/janus-gateway@1.2.1/html/janus.js",
        ],
        description="페이지에 포함할 스크립트 (WebRTC adapter, janus.js)",
    )


class ObservabilityConfig(BaseModel):
    """관측 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    log_level: str = Field("INFO", description="로그 레벨")
    log_format: str = Field("console", description="로그 포맷 (console 또는 json)")
    log_file: str | None = Field(None, description="로그 파일 경로")

    @field_validator("log_format")
    @classmethod
    def validate_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("console", "json"):
            raise ValueError("log_format은 console 또는 json이어야 합니다")
        return value


class AppConfig(BaseModel):
    """애플리케이션 전체 설정 스키마."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        validate_assignment=True,
    )

    gateway: GatewayConfig = Field(default_factory=GatewayConfig, description="게이트웨이 설정")
    mountpoint: MountpointConfig = Field(default_factory=MountpointConfig, description="마운트포인트 옵션")
    camera: CameraDefaultsConfig = Field(default_factory=CameraDefaultsConfig, description="카메라 기본값")
    server: ServerConfig = Field(default_factory=ServerConfig, description="서버 설정")
    auth: AuthConfig = Field(default_factory=AuthConfig, description="인증 설정")
    streaming: StreamingConfig = Field(default_factory=StreamingConfig, description="시청 단계 설정")
    viewer: ViewerConfig = Field(default_factory=ViewerConfig, description="시청 페이지 설정")
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="관측 설정",
    )
