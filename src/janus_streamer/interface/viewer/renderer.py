"""
시청 페이지 렌더러

카메라 정보와 게이트웨이 주소, 마운트포인트 ID로 WebRTC 시청 페이지를 생성합니다.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    select_autoescape,
)

from janus_streamer.common.errors import RenderError
from janus_streamer.common.logging import get_logger
from janus_streamer.domain.models.camera import CameraParameters

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
VIEWER_TEMPLATE = "viewer.html"


class ViewerRenderer:
    """jinja2 기반 시청 페이지 렌더러"""

    def __init__(
        self,
        title: str = "Live Stream",
        script_urls: Sequence[str] = (),
        template_dir: str | Path | None = None,
    ) -> None:
        self._title = title
        self._script_urls = list(script_urls)
        self._env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
            undefined=StrictUndefined,
        )

    def render(self, params: CameraParameters, gateway_url: str, mountpoint_id: int) -> str:
        """
        시청 페이지 HTML을 생성합니다.

        Raises:
            RenderError: 템플릿 로드/렌더링 실패
        """
        try:
            template = self._env.get_template(VIEWER_TEMPLATE)
            return template.render(
                title=self._title,
                script_urls=self._script_urls,
                room_name=params.room_name or params.camera_uuid,
                customer_name=params.customer_name,
                appliance_name=params.appliance_name,
                camera_uuid=params.camera_uuid,
                gateway_url=gateway_url,
                mountpoint_id=mountpoint_id,
            )
        except TemplateError as e:
            logger.error(
                f"시청 페이지 렌더링 실패: {e}",
                camera_uuid=params.camera_uuid,
                template=VIEWER_TEMPLATE,
            )
            raise RenderError(
                f"시청 페이지를 생성할 수 없습니다: {e}",
                template_name=VIEWER_TEMPLATE,
            ) from e
