"""
FastAPI 애플리케이션 팩토리

Interface Layer에서만 FastAPI에 의존합니다.
예외 핸들러, 요청 미들웨어, 라우터 등록을 담당합니다.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from janus_streamer import __version__
from janus_streamer.common.errors import AuthError, StreamerError
from janus_streamer.common.logging import (
    generate_trace_id,
    get_logger,
    set_camera_context,
    set_trace_id,
)
from janus_streamer.interface.api.routes import camera, stream

logger = get_logger(__name__)


def _error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message},
        headers=headers,
    )


def create_app() -> FastAPI:
    """FastAPI 애플리케이션을 생성합니다."""
    app = FastAPI(title="Janus Streamer API", version=__version__)

    @app.on_event("startup")
    async def on_startup() -> None:
        context = getattr(app.state, "app_context", None)
        if context is None:
            logger.warning("AppContext not found in app.state")
            return
        context.signaling_client.start()
        logger.info(
            "서비스 시작",
            gateway_url=context.signaling_client.base_url,
            auth_enabled=context.config.auth.enabled,
        )

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        context = getattr(app.state, "app_context", None)
        if context is None:
            return
        count = context.registry.unregister_all()
        await context.signaling_client.close()
        logger.info("서비스 종료", released_connectors=count)

    @app.middleware("http")
    async def request_context(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """요청별 trace_id 설정, 응답마다 연결 종료."""
        set_trace_id(request.headers.get("x-trace-id") or generate_trace_id())
        set_camera_context(None)
        response = await call_next(request)
        response.headers["Connection"] = "close"
        return response

    # 예외 핸들러 등록
    @app.exception_handler(StreamerError)
    async def handle_streamer_error(_: Request, exc: StreamerError) -> JSONResponse:
        """StreamerError → JSON 응답 매핑."""
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            "StreamerError 발생",
            code=exc.code.value,
            error_msg=exc.message,
            details=exc.details,
        )
        headers = {"WWW-Authenticate": exc.challenge} if isinstance(exc, AuthError) else None
        return _error_response(exc.http_status, exc.message, headers)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        """라우팅 실패(404/405) 등 → JSON 응답."""
        return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        """요청 검증 오류 → 400 응답."""
        logger.warning("검증 오류", errors=exc.errors())
        error_msg = "입력 데이터 검증 실패"
        if exc.errors():
            first_error = exc.errors()[0]
            error_msg = f"{first_error.get('loc', [''])}: {first_error.get('msg', '검증 실패')}"
        return _error_response(400, error_msg)

    @app.exception_handler(Exception)
    async def handle_unexpected(_: Request, exc: Exception) -> JSONResponse:
        """알 수 없는 예외 → 500 응답."""
        logger.error("알 수 없는 오류", error=str(exc))
        return _error_response(500, "서버 오류가 발생했습니다", {"Connection": "close"})

    # 라우터 등록
    app.include_router(camera.router)
    app.include_router(stream.router)

    return app
