"""
에러 처리 모듈

janus-streamer 전체에서 사용하는 예외 클래스와 에러 코드를 정의합니다.
모든 예외는 StreamerError를 상속받아 일관된 에러 처리가 가능합니다.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    에러 코드 열거형

    HTTP 상태 코드와 매핑되어 REST API 응답에 사용됩니다.
    """

    # 요청/카메라 관련 (4xx)
    INVALID_PARAMETERS = "INVALID_PARAMETERS"       # 요청 파라미터 누락/형식 오류
    CAMERA_NOT_FOUND = "CAMERA_NOT_FOUND"           # 등록되지 않은 카메라
    ENDPOINT_NOT_FOUND = "ENDPOINT_NOT_FOUND"       # 라우팅 실패
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"       # 지원하지 않는 메서드

    # 커넥터 관련 (4xx)
    CONNECTOR_BUSY = "CONNECTOR_BUSY"                       # Idle이 아닌 상태에서 연결 시도
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"   # 허용되지 않은 상태 전이

    # 인증 관련 (4xx)
    UNAUTHORIZED = "UNAUTHORIZED"               # 인증 실패

    # 게이트웨이 전송 관련 (5xx)
    TRANSPORT_FAILED = "TRANSPORT_FAILED"               # 게이트웨이 통신 실패
    TRANSPORT_TIMEOUT = "TRANSPORT_TIMEOUT"             # 게이트웨이 응답 타임아웃
    GATEWAY_PROTOCOL_ERROR = "GATEWAY_PROTOCOL_ERROR"   # success가 아닌 응답

    # 뷰어 페이지 (5xx)
    RENDER_FAILED = "RENDER_FAILED"             # 뷰어 페이지 생성 실패

    # 설정 관련 (4xx)
    CONFIG_INVALID = "CONFIG_INVALID"           # 설정 검증 실패
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"       # 설정 파일 없음
    CONFIG_PARSE_ERROR = "CONFIG_PARSE_ERROR"   # 설정 파싱 오류

    # 일반 (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"           # 내부 오류


# 에러 코드 → HTTP 상태 코드 매핑
_ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    # 4xx Client Errors
    ErrorCode.INVALID_PARAMETERS: 400,
    ErrorCode.CONFIG_INVALID: 400,
    ErrorCode.CONFIG_PARSE_ERROR: 400,

    ErrorCode.UNAUTHORIZED: 401,

    ErrorCode.CAMERA_NOT_FOUND: 404,
    ErrorCode.ENDPOINT_NOT_FOUND: 404,
    ErrorCode.CONFIG_NOT_FOUND: 404,

    ErrorCode.METHOD_NOT_ALLOWED: 405,

    ErrorCode.CONNECTOR_BUSY: 409,
    ErrorCode.INVALID_STATE_TRANSITION: 409,

    # 5xx Server Errors
    ErrorCode.TRANSPORT_FAILED: 502,
    ErrorCode.GATEWAY_PROTOCOL_ERROR: 502,
    ErrorCode.TRANSPORT_TIMEOUT: 504,

    ErrorCode.RENDER_FAILED: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def get_http_status(error_code: ErrorCode) -> int:
    """
    에러 코드에 해당하는 HTTP 상태 코드를 반환합니다.

    Args:
        error_code: 에러 코드

    Returns:
        HTTP 상태 코드 (기본값: 500)
    """
    return _ERROR_CODE_TO_HTTP_STATUS.get(error_code, 500)


class StreamerError(Exception):
    """
    janus-streamer 기본 예외 클래스

    모든 커스텀 예외의 부모 클래스입니다.
    에러 코드, 메시지, 상세 정보를 포함합니다.

    Attributes:
        code: 에러 코드 (ErrorCode)
        message: 사용자에게 표시할 메시지
        details: 추가 상세 정보 (디버깅용)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def http_status(self) -> int:
        """HTTP 상태 코드 반환"""
        return get_http_status(self.code)

    def to_dict(self) -> dict[str, Any]:
        """
        예외 정보를 딕셔너리로 변환합니다.

        로그 및 디버그 응답에서 사용됩니다.
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class CameraError(StreamerError):
    """
    카메라 관련 예외

    카메라 등록 요청의 검증 실패, 미등록 카메라 조회 등을 나타냅니다.

    Attributes:
        camera_uuid: 오류가 발생한 카메라 식별자
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        camera_uuid: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.camera_uuid = camera_uuid
        _details = {"camera_uuid": camera_uuid}
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class ConnectorError(StreamerError):
    """
    커넥터 상태 머신 관련 예외

    Attributes:
        camera_uuid: 커넥터가 담당하는 카메라 식별자
        state: 오류 발생 시점의 커넥터 상태
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        camera_uuid: str,
        state: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.camera_uuid = camera_uuid
        self.state = state
        _details: dict[str, Any] = {"camera_uuid": camera_uuid}
        if state:
            _details["state"] = state
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class GatewayError(StreamerError):
    """
    게이트웨이 시그널링 예외의 공통 부모

    Attributes:
        target_url: 요청 대상 URL
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        target_url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.target_url = target_url
        _details: dict[str, Any] = {}
        if target_url:
            _details["target_url"] = target_url
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class TransportError(GatewayError):
    """
    전송 관련 예외

    네트워크 오류, 타임아웃 등 게이트웨이와의 통신 자체가 실패한 경우입니다.
    """


class ProtocolError(GatewayError):
    """
    프로토콜 관련 예외

    게이트웨이가 응답했지만 JSON이 아니거나 success 응답이 아닌 경우입니다.

    Attributes:
        response_tag: 응답의 "janus" 필드 값 (없으면 None)
    """

    def __init__(
        self,
        message: str,
        target_url: str | None = None,
        response_tag: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.response_tag = response_tag
        _details: dict[str, Any] = {}
        if response_tag is not None:
            _details["response_tag"] = response_tag
        if details:
            _details.update(details)
        super().__init__(ErrorCode.GATEWAY_PROTOCOL_ERROR, message, target_url, _details)


class AuthError(StreamerError):
    """
    인증 관련 예외

    Attributes:
        challenge: WWW-Authenticate 헤더 값
    """

    def __init__(
        self,
        message: str,
        realm: str = "Stream Access",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.challenge = f'Basic realm="{realm}"'
        super().__init__(ErrorCode.UNAUTHORIZED, message, details)


class RenderError(StreamerError):
    """
    뷰어 페이지 생성 실패 예외

    Attributes:
        template_name: 실패한 템플릿 이름
    """

    def __init__(
        self,
        message: str,
        template_name: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.template_name = template_name
        _details = {"template_name": template_name}
        if details:
            _details.update(details)
        super().__init__(ErrorCode.RENDER_FAILED, message, _details)


class ConfigError(StreamerError):
    """
    설정 관련 예외

    설정 파일의 로드, 파싱, 검증 중 발생하는 오류를 나타냅니다.

    Attributes:
        config_path: 오류가 발생한 설정 파일 경로 (선택)
        field_name: 오류가 발생한 필드 이름 (선택)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        config_path: str | None = None,
        field_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.config_path = config_path
        self.field_name = field_name
        _details: dict[str, Any] = {}
        if config_path:
            _details["config_path"] = config_path
        if field_name:
            _details["field_name"] = field_name
        if details:
            _details.update(details)
        super().__init__(code, message, _details)
