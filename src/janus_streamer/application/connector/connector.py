"""
게이트웨이 커넥터

카메라 한 대에 대해 세션 생성 → 플러그인 연결 → 마운트포인트 생성을 순차적으로 수행하고,
세션이 살아있는 동안 keep-alive를 보내는 상태 머신입니다.

모든 게이트웨이 호출은 이벤트 루프의 태스크에서 수행되며, 요청 처리 스레드를 막지 않습니다.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Protocol

from janus_streamer.common.errors import (
    CameraError,
    ConnectorError,
    ErrorCode,
    GatewayError,
)
from janus_streamer.common.logging import get_logger
from janus_streamer.domain.models.camera import CameraParameters, next_mountpoint_id
from janus_streamer.domain.models.connector import (
    ConnectorEvent,
    ConnectorEventType,
    ConnectorState,
    SessionHandle,
    is_transition_allowed,
)


class SignalingClientProtocol(Protocol):
    """시그널링 클라이언트 인터페이스 정의"""
    @property
    def base_url(self) -> str: ...
    async def create_session(self) -> int: ...
    async def attach_plugin(self, session_id: int) -> int: ...
    async def create_mountpoint(
        self,
        session_id: int,
        handle_id: int,
        params: CameraParameters,
        mountpoint_id: int,
    ) -> Any: ...
    async def keep_alive(self, session_id: int) -> None: ...


EventCallback = Callable[[ConnectorEvent], None]


class GatewayConnector:
    """
    카메라별 게이트웨이 커넥터

    상태는 성공 시에만 IDLE → CREATING_SESSION → ATTACHING_PLUGIN →
    CREATING_MOUNTPOINT → READY 순서로 전진하고, 실패나 disconnect 시 IDLE로 돌아갑니다.
    READY ↔ STREAMING 전환은 외부에서 mark_streaming()/mark_stopped()로 요청합니다.

    리셋될 때마다 세대(generation)를 올려, 리셋 이후 도착한 응답은 상태를 바꾸지 않습니다.

    Example:
        >>> connector = GatewayConnector("cam-01", client, on_event=print)
        >>> connector.connect_to_gateway(params)
        >>> await connector.wait_for_state(ConnectorState.READY)
        >>> connector.disconnect()
    """

    KEEPALIVE_INTERVAL_SECONDS = 30.0

    def __init__(
        self,
        camera_uuid: str,
        client: SignalingClientProtocol,
        on_event: EventCallback | None = None,
        mountpoint_id: int | None = None,
        keepalive_interval: float = KEEPALIVE_INTERVAL_SECONDS,
    ) -> None:
        self._camera_uuid = camera_uuid
        self._client = client
        self._on_event = on_event
        self._mountpoint_id = mountpoint_id if mountpoint_id is not None else next_mountpoint_id()
        self._keepalive_interval = keepalive_interval

        self._state = ConnectorState.IDLE
        self._session = SessionHandle()
        self._params: CameraParameters | None = None
        self._generation = 0
        self._destroyed = False
        self._created_at = time.time()

        self._handshake_task: asyncio.Task[None] | None = None
        self._keepalive_task: asyncio.Task[None] | None = None

        self._logger = get_logger(__name__, camera_uuid=camera_uuid)

    @property
    def camera_uuid(self) -> str:
        return self._camera_uuid

    @property
    def mountpoint_id(self) -> int:
        return self._mountpoint_id

    @property
    def connector_id(self) -> int:
        """이벤트 발신자 식별용 ID (마운트포인트 ID와 동일)"""
        return self._mountpoint_id

    @property
    def state(self) -> ConnectorState:
        return self._state

    @property
    def session(self) -> SessionHandle:
        return self._session

    @property
    def session_id(self) -> int:
        return self._session.session_id

    @property
    def handle_id(self) -> int:
        return self._session.handle_id

    @property
    def params(self) -> CameraParameters | None:
        return self._params

    @property
    def gateway_url(self) -> str:
        return self._client.base_url

    @property
    def is_connected(self) -> bool:
        """READY 또는 STREAMING 상태인지 확인"""
        return self._state in (ConnectorState.READY, ConnectorState.STREAMING)

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def keepalive_active(self) -> bool:
        return self._keepalive_task is not None and not self._keepalive_task.done()

    def set_on_event(self, callback: EventCallback | None) -> None:
        self._on_event = callback

    def connect_to_gateway(self, params: CameraParameters) -> None:
        """
        게이트웨이 핸드셰이크를 시작합니다.

        IDLE 상태에서만 허용됩니다. 상태는 즉시 CREATING_SESSION이 되고,
        나머지 단계는 이벤트 루프의 태스크에서 진행됩니다.

        Raises:
            CameraError: 파라미터가 유효하지 않음 (상태는 IDLE 유지)
            ConnectorError: IDLE이 아니거나 이미 해제된 커넥터
        """
        if self._destroyed:
            raise ConnectorError(
                ErrorCode.INVALID_STATE_TRANSITION,
                "이미 해제된 커넥터입니다",
                camera_uuid=self._camera_uuid,
                state=self._state.value,
            )

        if not params.is_valid or params.camera_uuid != self._camera_uuid:
            raise CameraError(
                ErrorCode.INVALID_PARAMETERS,
                "유효하지 않은 카메라 파라미터입니다",
                camera_uuid=params.camera_uuid or self._camera_uuid,
            )

        if self._state != ConnectorState.IDLE:
            raise ConnectorError(
                ErrorCode.CONNECTOR_BUSY,
                f"이미 연결 중입니다: {self._state.value}",
                camera_uuid=self._camera_uuid,
                state=self._state.value,
            )

        loop = asyncio.get_running_loop()

        self._params = params
        self._generation += 1
        self._set_state(ConnectorState.CREATING_SESSION)

        self._logger.info(
            "게이트웨이 연결 시작",
            gateway_url=self.gateway_url,
            mountpoint_id=self._mountpoint_id,
            rtsp_url=params.to_dict()["rtsp_url"],
        )

        self._handshake_task = loop.create_task(
            self._run_handshake(self._generation, params),
            name=f"handshake_{self._camera_uuid}_{self._mountpoint_id}",
        )

    def disconnect(self) -> None:
        """
        연결을 해제합니다.

        진행 중인 요청과 keep-alive를 취소하고 세션 정보를 지운 뒤 IDLE로 돌아갑니다.
        어떤 상태에서도 호출할 수 있으며, 여러 번 호출해도 결과는 같습니다.
        """
        previous = self._state
        self._generation += 1

        task, self._handshake_task = self._handshake_task, None
        if task is not None and not task.done():
            task.cancel()

        self._stop_keepalive()
        self._session = SessionHandle()

        if previous == ConnectorState.IDLE:
            return

        self._set_state(ConnectorState.IDLE)
        self._logger.info("게이트웨이 연결 해제", previous_state=previous.value)
        self._emit(ConnectorEventType.CONNECTION_STATE_CHANGED, connected=False)

    def destroy(self) -> None:
        """연결을 해제하고 커넥터를 폐기합니다. 이후 재사용할 수 없습니다."""
        if self._destroyed:
            return
        self.disconnect()
        self._destroyed = True
        self._logger.debug("커넥터 폐기", mountpoint_id=self._mountpoint_id)
        self._emit(ConnectorEventType.DESTROYED)

    def mark_streaming(self) -> bool:
        """READY → STREAMING. 그 외 상태에서는 경고만 남기고 무시합니다."""
        if self._state != ConnectorState.READY:
            self._logger.warning(
                f"스트리밍을 시작할 수 없는 상태입니다: {self._state.value}",
                state=self._state.value,
            )
            return False

        self._set_state(ConnectorState.STREAMING)
        self._logger.info("스트리밍 시작", mountpoint_id=self._mountpoint_id)
        self._emit(ConnectorEventType.STREAMING_STARTED)
        return True

    def mark_stopped(self) -> bool:
        """STREAMING → READY. 그 외 상태에서는 경고만 남기고 무시합니다."""
        if self._state != ConnectorState.STREAMING:
            self._logger.warning(
                f"스트리밍 중이 아닙니다: {self._state.value}",
                state=self._state.value,
            )
            return False

        self._set_state(ConnectorState.READY)
        self._logger.info("스트리밍 중지", mountpoint_id=self._mountpoint_id)
        self._emit(ConnectorEventType.STREAMING_STOPPED)
        return True

    async def wait_for_state(
        self,
        *states: ConnectorState,
        timeout: float = 10.0,
        poll_interval: float = 0.01,
    ) -> ConnectorState:
        """
        지정한 상태 중 하나가 될 때까지 대기합니다.

        Raises:
            asyncio.TimeoutError: timeout 내에 도달하지 못함
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self._state not in states:
            if loop.time() >= deadline:
                raise asyncio.TimeoutError(
                    f"{timeout}초 내에 {[s.value for s in states]} 상태가 되지 않았습니다"
                )
            await asyncio.sleep(poll_interval)
        return self._state

    async def _run_handshake(self, generation: int, params: CameraParameters) -> None:
        try:
            session_id = await self._client.create_session()
            if not self._is_current(generation):
                return
            self._session = SessionHandle(session_id=session_id)
            self._start_keepalive(generation, session_id)
            self._set_state(ConnectorState.ATTACHING_PLUGIN)

            handle_id = await self._client.attach_plugin(session_id)
            if not self._is_current(generation):
                return
            self._session = SessionHandle(session_id=session_id, handle_id=handle_id)
            self._set_state(ConnectorState.CREATING_MOUNTPOINT)

            await self._client.create_mountpoint(
                session_id, handle_id, params, self._mountpoint_id
            )
            if not self._is_current(generation):
                return
            self._set_state(ConnectorState.READY)

            self._logger.info(
                "마운트포인트 준비 완료",
                session_id=session_id,
                handle_id=handle_id,
                mountpoint_id=self._mountpoint_id,
            )
            self._emit(
                ConnectorEventType.SESSION_READY,
                session_id=session_id,
                handle_id=handle_id,
            )
            self._emit(ConnectorEventType.CONNECTION_STATE_CHANGED, connected=True)

        except asyncio.CancelledError:
            self._logger.debug("핸드셰이크 취소", state=self._state.value)
            raise
        except GatewayError as e:
            if self._is_current(generation):
                self._fail(e.message, failed_state=self._state)
        except Exception as e:
            if self._is_current(generation):
                self._logger.exception(f"핸드셰이크 예외: {e}")
                self._fail(str(e), failed_state=self._state)
        finally:
            if self._handshake_task is asyncio.current_task():
                self._handshake_task = None

    def _fail(self, reason: str, failed_state: ConnectorState) -> None:
        """실패 처리: keep-alive 중지, 세션 정보 폐기, IDLE 복귀 후 ERROR 이벤트 발행."""
        self._generation += 1
        self._stop_keepalive()
        self._session = SessionHandle()
        self._set_state(ConnectorState.IDLE)

        self._logger.error(
            f"게이트웨이 연결 실패: {reason}",
            failed_state=failed_state.value,
            mountpoint_id=self._mountpoint_id,
        )
        self._emit(ConnectorEventType.ERROR, error=reason)

    def _start_keepalive(self, generation: int, session_id: int) -> None:
        self._stop_keepalive()
        self._keepalive_task = asyncio.get_running_loop().create_task(
            self._keepalive_loop(generation, session_id),
            name=f"keepalive_{self._camera_uuid}_{session_id}",
        )

    def _stop_keepalive(self) -> None:
        task, self._keepalive_task = self._keepalive_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _keepalive_loop(self, generation: int, session_id: int) -> None:
        while True:
            await asyncio.sleep(self._keepalive_interval)
            if not self._is_current(generation) or self._session.session_id != session_id:
                return
            try:
                await self._client.keep_alive(session_id)
            except Exception as e:
                self._logger.warning("keep-alive 오류", session_id=session_id, error=str(e))

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and not self._destroyed

    def _set_state(self, target: ConnectorState) -> None:
        if not is_transition_allowed(self._state, target):
            raise ConnectorError(
                ErrorCode.INVALID_STATE_TRANSITION,
                f"허용되지 않은 상태 전이: {self._state.value} → {target.value}",
                camera_uuid=self._camera_uuid,
                state=self._state.value,
            )
        self._logger.debug(
            "상태 전이",
            from_state=self._state.value,
            to_state=target.value,
        )
        self._state = target

    def _emit(self, event_type: ConnectorEventType, **fields: Any) -> None:
        if self._on_event is None:
            return
        event = ConnectorEvent(
            type=event_type,
            camera_uuid=self._camera_uuid,
            connector_id=self._mountpoint_id,
            **fields,
        )
        try:
            self._on_event(event)
        except Exception:
            self._logger.exception("이벤트 콜백 오류", event_type=event_type.value)

    def to_summary(self) -> dict[str, Any]:
        """요약 정보를 딕셔너리로 변환"""
        return {
            "camera_uuid": self._camera_uuid,
            "state": self._state.value,
            "mountpoint_id": self._mountpoint_id,
            "session_id": self._session.session_id,
            "handle_id": self._session.handle_id,
            "gateway_url": self.gateway_url,
            "is_connected": self.is_connected,
            "keepalive_active": self.keepalive_active,
            "created_at": self._created_at,
        }
