"""
카메라 등록 API
"""

from __future__ import annotations

from typing import Any

import orjson
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from janus_streamer.application.camera.registry import CameraRegistry
from janus_streamer.common.errors import CameraError, ErrorCode
from janus_streamer.common.logging import get_logger, set_camera_context
from janus_streamer.domain.models.camera import CameraParameters, build_rtsp_url
from janus_streamer.interface.api.dependencies import get_config, get_registry
from janus_streamer.interface.config.schema import AppConfig

logger = get_logger(__name__)

router = APIRouter(tags=["camera"])


# === DTO 정의 ===


class CameraRegistrationRequest(BaseModel):
    """카메라 등록 요청 본문"""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    camera_uuid: str | None = Field(None, description="카메라 식별자 (없으면 경로 값 사용)")
    customer_name: str = Field("", description="고객(교육청) 이름")
    appliance_name: str = Field("", description="설비(학교) 이름")
    camera_id: str = Field("", description="카메라 ID")
    room_name: str = Field("", description="교실 이름")
    ip: str | None = Field(None, description="카메라 주소 (host:port)")
    ip_port: str | None = Field(None, description="카메라 주소 (ip의 별칭)")
    rtsp_user: str | None = Field(None, description="RTSP 사용자")
    rtsp_password: str | None = Field(None, description="RTSP 비밀번호")

    @field_validator("customer_name", "appliance_name", "camera_id", "room_name", mode="before")
    @classmethod
    def null_to_empty(cls, value: Any) -> Any:
        # null은 빈 문자열로 취급
        return "" if value is None else value

    @model_validator(mode="after")
    def require_address(self) -> "CameraRegistrationRequest":
        if not self.address:
            raise ValueError("ip 또는 ip_port는 필수입니다")
        return self

    @property
    def address(self) -> str:
        return (self.ip_port or "").strip() or (self.ip or "").strip()


# === 유틸 ===


def _parse_body(raw: bytes, camera_uuid: str) -> CameraRegistrationRequest:
    if not raw.strip():
        raise CameraError(ErrorCode.INVALID_PARAMETERS, "요청 본문이 비어 있습니다", camera_uuid=camera_uuid)

    try:
        data: Any = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise CameraError(
            ErrorCode.INVALID_PARAMETERS,
            f"JSON 파싱에 실패했습니다: {e}",
            camera_uuid=camera_uuid,
        ) from e

    if not isinstance(data, dict):
        raise CameraError(ErrorCode.INVALID_PARAMETERS, "요청 본문은 JSON 객체여야 합니다", camera_uuid=camera_uuid)

    try:
        return CameraRegistrationRequest.model_validate(data)
    except ValidationError as e:
        first_error = e.errors()[0] if e.errors() else {}
        raise CameraError(
            ErrorCode.INVALID_PARAMETERS,
            first_error.get("msg", "요청 검증 실패"),
            camera_uuid=camera_uuid,
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e


def _to_parameters(
    request: CameraRegistrationRequest,
    camera_uuid: str,
    config: AppConfig,
) -> CameraParameters:
    defaults = config.camera
    return CameraParameters(
        camera_uuid=camera_uuid,
        customer_name=request.customer_name,
        appliance_name=request.appliance_name,
        camera_id=request.camera_id,
        room_name=request.room_name,
        ip_port=request.address,
        rtsp_url=build_rtsp_url(request.address, defaults.rtsp_path),
        rtsp_user=request.rtsp_user if request.rtsp_user is not None else defaults.rtsp_user,
        rtsp_password=(
            request.rtsp_password if request.rtsp_password is not None else defaults.rtsp_password
        ),
    )


async def _register(
    request: Request,
    path_uuid: str,
    registry: CameraRegistry,
    config: AppConfig,
) -> JSONResponse:
    body = _parse_body(await request.body(), path_uuid)

    camera_uuid = (body.camera_uuid or "").strip() or path_uuid.strip()
    if not camera_uuid:
        raise CameraError(ErrorCode.INVALID_PARAMETERS, "camera_uuid가 없습니다", camera_uuid="")

    set_camera_context(camera_uuid)
    params = _to_parameters(body, camera_uuid, config)
    connector = registry.register(params)

    return JSONResponse(
        status_code=200,
        content={
            "status": "success",
            "message": "카메라가 등록되었습니다",
            "camera_uuid": camera_uuid,
            "mountpoint_id": connector.mountpoint_id,
        },
    )


# === 라우트 ===


@router.post("/camera")
@router.post("/camera/")
async def register_camera_without_id(
    request: Request,
    registry: CameraRegistry = Depends(get_registry),
    config: AppConfig = Depends(get_config),
) -> JSONResponse:
    """경로에 식별자가 없는 등록 요청 (본문의 camera_uuid 필요)"""
    return await _register(request, "", registry, config)


@router.post("/camera/{camera_uuid}")
async def register_camera(
    camera_uuid: str,
    request: Request,
    registry: CameraRegistry = Depends(get_registry),
    config: AppConfig = Depends(get_config),
) -> JSONResponse:
    """카메라를 등록하고 게이트웨이 마운트포인트 생성을 시작합니다."""
    logger.info(f"카메라 등록 요청: {camera_uuid}", camera_uuid=camera_uuid)
    return await _register(request, camera_uuid, registry, config)
