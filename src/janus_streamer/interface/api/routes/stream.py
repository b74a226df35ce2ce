"""
시청 페이지 API
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from fastapi.responses import HTMLResponse

from janus_streamer.application.stream.directory import StreamDirectory
from janus_streamer.common.errors import CameraError, ErrorCode
from janus_streamer.common.logging import get_logger
from janus_streamer.interface.api.dependencies import (
    check_viewer_auth,
    get_config,
    get_directory,
    get_renderer,
)
from janus_streamer.interface.config.schema import AppConfig
from janus_streamer.interface.viewer.renderer import ViewerRenderer

logger = get_logger(__name__)

router = APIRouter(tags=["stream"])


@router.get("/stream/{camera_uuid}", response_class=HTMLResponse)
async def get_stream_page(
    camera_uuid: str,
    authorization: str | None = Header(default=None),
    directory: StreamDirectory = Depends(get_directory),
    renderer: ViewerRenderer = Depends(get_renderer),
    config: AppConfig = Depends(get_config),
) -> HTMLResponse:
    """
    카메라 시청 페이지를 반환합니다.

    조회 순서: 디렉터리(404) → Basic 인증(401) → 렌더링(500)
    """
    entry = directory.get(camera_uuid)
    if entry is None:
        raise CameraError(
            ErrorCode.CAMERA_NOT_FOUND,
            f"스트림을 찾을 수 없습니다: {camera_uuid}",
            camera_uuid=camera_uuid,
        )

    check_viewer_auth(authorization, config.auth)

    html = renderer.render(entry.params, entry.gateway_url, entry.mountpoint_id)
    logger.debug("시청 페이지 제공", camera_uuid=camera_uuid, mountpoint_id=entry.mountpoint_id)
    return HTMLResponse(content=html, status_code=200)
