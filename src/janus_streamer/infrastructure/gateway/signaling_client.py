# -*- coding: utf-8 -*-
"""
Janus 게이트웨이 시그널링 클라이언트.

httpx를 사용하여 Janus HTTP API(JSON over HTTP)로 세션 생성, 플러그인 연결,
마운트포인트 생성, keep-alive 요청을 보내고 응답 봉투를 해석합니다.

재시도는 하지 않습니다. 재시도/백오프 정책은 호출자가 결정합니다.
"""

from __future__ import annotations

import asyncio
import threading
import time
import uuid
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

import httpx

from janus_streamer.common.errors import ErrorCode, ProtocolError, TransportError
from janus_streamer.common.logging import get_logger

if TYPE_CHECKING:
    from janus_streamer.domain.models.camera import CameraParameters


PROTOCOL_TAG = "janus"
SUCCESS_TAG = "success"
STREAMING_PLUGIN = "janus.plugin.streaming"


@dataclass(frozen=True)
class MountpointOptions:
    """
    RTSP 마운트포인트 생성 옵션.

    Attributes:
        audio: 오디오 트랙 사용
        video: 비디오 트랙 사용
        permanent: 게이트웨이 설정 파일에 영구 저장 여부
        rtsp_reconnect_delay: RTSP 재연결 대기 (초)
        rtsp_session_timeout: RTSP 세션 타임아웃 (0이면 서버 값 사용)
        rtsp_timeout: RTSP 요청 타임아웃 (초)
        rtsp_conn_timeout: RTSP 연결 타임아웃 (초)
    """

    audio: bool = True
    video: bool = True
    permanent: bool = False
    rtsp_reconnect_delay: int = 5
    rtsp_session_timeout: int = 0
    rtsp_timeout: int = 10
    rtsp_conn_timeout: int = 5


def new_transaction(kind: str) -> str:
    """요청 종류별 트랜잭션 ID를 생성합니다."""
    return f"tx-{kind}-{uuid.uuid4().hex[:12]}"


def build_mountpoint_body(
    params: CameraParameters,
    mountpoint_id: int,
    options: MountpointOptions | None = None,
) -> dict[str, Any]:
    """
    스트리밍 플러그인의 RTSP 마운트포인트 create 요청 본문을 만듭니다.

    Args:
        params: 카메라 파라미터
        mountpoint_id: 이 커넥터에 할당된 마운트포인트 ID
        options: RTSP 옵션 (None이면 기본값)
    """
    opts = options or MountpointOptions()
    body: dict[str, Any] = {
        "request": "create",
        "type": "rtsp",
        "id": mountpoint_id,
        "name": params.room_name,
        "description": params.description,
        "audio": opts.audio,
        "video": opts.video,
        "permanent": opts.permanent,
        "url": params.rtsp_url,
        "metadata": params.metadata,
        "rtsp_user": params.rtsp_user,
        "rtsp_pwd": params.rtsp_password,
    }
    rtsp_opts = asdict(opts)
    for key in ("audio", "video", "permanent"):
        rtsp_opts.pop(key)
    body.update(rtsp_opts)
    return body


class GatewaySignalingClient:
    """
    Janus 시그널링 클라이언트.

    호출마다 HTTP POST 한 번을 보내며, {"janus": "success"} 응답만 성공으로 처리합니다.
    전송 실패는 TransportError, 그 외 응답은 ProtocolError로 발생시킵니다.

    Example:
        >>> client = GatewaySignalingClient("http://localhost:8088/janus")
        >>> session_id = await client.create_session()
        >>> handle_id = await client.attach_plugin(session_id)
        >>> await client.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        plugin: str = STREAMING_PLUGIN,
        mountpoint_options: MountpointOptions | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        GatewaySignalingClient 초기화.

        Args:
            base_url: 게이트웨이 API 기본 URL (예: http://janus:8088/janus)
            timeout_seconds: 요청별 전송 타임아웃 (초)
            plugin: 연결할 플러그인 이름
            mountpoint_options: 마운트포인트 생성 옵션
            headers: 추가 HTTP 헤더
            transport: httpx 전송 계층 (테스트용 MockTransport 주입)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._plugin = plugin
        self._mountpoint_options = mountpoint_options or MountpointOptions()
        self._headers = dict(headers or {})
        self._transport = transport

        self._client: httpx.AsyncClient | None = None
        self._lock = threading.Lock()

        # 통계
        self._request_count = 0
        self._error_count = 0
        self._total_latency_ms = 0.0

        self._logger = get_logger(__name__)

    @property
    def base_url(self) -> str:
        """게이트웨이 API 기본 URL."""
        return self._base_url

    @property
    def request_count(self) -> int:
        return self._request_count

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def avg_latency_ms(self) -> float:
        """평균 응답 지연 시간 (밀리초)."""
        if self._request_count == 0:
            return 0.0
        return self._total_latency_ms / self._request_count

    def start(self) -> None:
        """HTTP 클라이언트를 생성합니다."""
        with self._lock:
            if self._client is not None:
                return

            self._client = httpx.AsyncClient(
                timeout=self._timeout_seconds,
                headers=self._headers,
                transport=self._transport,
            )
            self._logger.info("게이트웨이 클라이언트 시작", url=self._base_url)

    async def close(self) -> None:
        """HTTP 클라이언트를 종료합니다."""
        with self._lock:
            client, self._client = self._client, None

        if client is not None:
            await client.aclose()
            self._logger.info("게이트웨이 클라이언트 종료")

    async def create_session(self) -> int:
        """
        게이트웨이 세션을 생성합니다.

        Returns:
            세션 ID
        """
        url = self._base_url
        payload = {
            "janus": "create",
            "transaction": new_transaction("create-session"),
        }
        body = await self._post(url, payload)
        session_id = self._extract_id(url, body)
        self._logger.info("게이트웨이 세션 생성", session_id=session_id)
        return session_id

    async def attach_plugin(self, session_id: int) -> int:
        """
        세션에 스트리밍 플러그인을 연결합니다.

        Returns:
            플러그인 핸들 ID
        """
        url = f"{self._base_url}/{session_id}"
        payload = {
            "janus": "attach",
            "plugin": self._plugin,
            "transaction": new_transaction("attach-plugin"),
        }
        body = await self._post(url, payload)
        handle_id = self._extract_id(url, body)
        self._logger.info("플러그인 연결", session_id=session_id, handle_id=handle_id)
        return handle_id

    async def create_mountpoint(
        self,
        session_id: int,
        handle_id: int,
        params: CameraParameters,
        mountpoint_id: int,
    ) -> dict[str, Any]:
        """
        RTSP 마운트포인트를 생성합니다.

        Returns:
            플러그인 응답 데이터 (없으면 빈 딕셔너리)
        """
        url = f"{self._base_url}/{session_id}/{handle_id}"
        payload = {
            "janus": "message",
            "transaction": new_transaction("create-mountpoint"),
            "session_id": session_id,
            "handle_id": handle_id,
            "body": build_mountpoint_body(params, mountpoint_id, self._mountpoint_options),
        }
        body = await self._post(url, payload)

        plugin_data = (body.get("plugindata") or {}).get("data") or {}
        if plugin_data.get("error") or plugin_data.get("error_code"):
            raise ProtocolError(
                f"마운트포인트 생성 거부: {plugin_data.get('error', plugin_data.get('error_code'))}",
                target_url=url,
                response_tag=body.get(PROTOCOL_TAG),
                details={"error_code": plugin_data.get("error_code")},
            )

        self._logger.info(
            "마운트포인트 생성",
            session_id=session_id,
            handle_id=handle_id,
            mountpoint_id=mountpoint_id,
            rtsp_url=params.to_dict()["rtsp_url"],
        )
        return plugin_data

    async def keep_alive(self, session_id: int) -> None:
        """
        세션 keep-alive를 보냅니다.

        응답은 사용하지 않으며, 실패는 경고 로그만 남깁니다.
        """
        url = f"{self._base_url}/{session_id}"
        payload = {
            "janus": "keepalive",
            "session_id": session_id,
            "transaction": f"tx-keepalive-{int(time.time() * 1000)}",
        }
        try:
            client = self._ensure_client()
            await client.post(url, json=payload)
            self._logger.debug("keep-alive 전송", session_id=session_id)
        except httpx.HTTPError as e:
            self._error_count += 1
            self._logger.warning("keep-alive 전송 실패", session_id=session_id, error=str(e))

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self.start()
        return self._client  # type: ignore[return-value]

    async def _post(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """JSON 요청을 보내고 success 응답 본문을 반환합니다."""
        client = self._ensure_client()
        start_time = time.perf_counter()

        try:
            # 요청 전체에 대한 마감 시간 (httpx timeout은 단계별)
            response = await asyncio.wait_for(
                client.post(url, json=payload),
                timeout=self._timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            self._error_count += 1
            raise TransportError(
                ErrorCode.TRANSPORT_TIMEOUT,
                f"게이트웨이 응답 시간 초과 ({self._timeout_seconds}초)",
                target_url=url,
                details={"request": payload.get("janus")},
            ) from e
        except httpx.HTTPError as e:
            self._error_count += 1
            raise TransportError(
                ErrorCode.TRANSPORT_FAILED,
                f"게이트웨이 통신 실패: {e}",
                target_url=url,
                details={"request": payload.get("janus")},
            ) from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        self._request_count += 1
        self._total_latency_ms += latency_ms

        self._logger.debug(
            "게이트웨이 응답 수신",
            request=payload.get("janus"),
            status_code=response.status_code,
            latency_ms=f"{latency_ms:.1f}",
        )

        if response.status_code >= 400:
            self._error_count += 1
            raise TransportError(
                ErrorCode.TRANSPORT_FAILED,
                f"게이트웨이 HTTP 오류: {response.status_code}",
                target_url=url,
                details={"status_code": response.status_code, "response": response.text[:200]},
            )

        try:
            body = response.json()
        except ValueError as e:
            self._error_count += 1
            raise ProtocolError(
                "게이트웨이 응답 파싱 실패",
                target_url=url,
                details={"response": response.text[:200]},
            ) from e

        return self._expect_success(url, body)

    def _expect_success(self, url: str, body: Any) -> dict[str, Any]:
        """응답 봉투의 janus 태그가 success인지 확인합니다."""
        if not isinstance(body, dict):
            self._error_count += 1
            raise ProtocolError("게이트웨이 응답이 JSON 객체가 아닙니다", target_url=url)

        tag = body.get(PROTOCOL_TAG)
        if tag != SUCCESS_TAG:
            self._error_count += 1
            reason = (body.get("error") or {}).get("reason") if isinstance(body.get("error"), dict) else None
            raise ProtocolError(
                f"게이트웨이 요청 실패: {reason or tag}",
                target_url=url,
                response_tag=tag,
            )
        return body

    def _extract_id(self, url: str, body: dict[str, Any]) -> int:
        """data.id 값을 정수로 추출합니다."""
        data = body.get("data")
        raw_id = data.get("id") if isinstance(data, dict) else None
        try:
            value = int(raw_id)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            self._error_count += 1
            raise ProtocolError("응답에 data.id가 없습니다", target_url=url, response_tag=SUCCESS_TAG)
        if value <= 0:
            self._error_count += 1
            raise ProtocolError(f"유효하지 않은 ID: {value}", target_url=url, response_tag=SUCCESS_TAG)
        return value

    def get_stats(self) -> dict[str, Any]:
        """통계 정보 반환."""
        return {
            "url": self._base_url,
            "running": self._client is not None,
            "request_count": self._request_count,
            "error_count": self._error_count,
            "avg_latency_ms": round(self.avg_latency_ms, 2),
        }
