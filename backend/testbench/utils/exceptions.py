# testbench/backend/testbench/utils/exceptions.py
"""
커스텀 예외 클래스 정의

애플리케이션에서 사용하는 구체적인 예외들을 정의합니다.
"""

from typing import Any, Dict, Optional


class TestbenchException(Exception):
    """TestBench 기본 예외 클래스"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(TestbenchException):
    """데이터 검증 실패 예외 (잘못된 CSV, 시트 없는 워크북, 필수 필드 누락 등)"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(message, error_code="VALIDATION_ERROR", **kwargs)


class ConfigurationError(TestbenchException):
    """설정 오류 예외"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(message, error_code="CONFIGURATION_ERROR", **kwargs)


class UnsupportedFormatError(TestbenchException):
    """지원하지 않는 파일 형식 예외"""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        extension: Optional[str] = None,
        **kwargs
    ):
        self.filename = filename
        self.extension = extension
        super().__init__(message, error_code="UNSUPPORTED_FORMAT", **kwargs)


class ResourceNotFoundError(TestbenchException):
    """리소스 없음 예외"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message, error_code="RESOURCE_NOT_FOUND", **kwargs)


class ResourceConflictError(TestbenchException):
    """리소스 충돌 예외 (유니크 제약 위반)"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        conflicting_field: Optional[str] = None,
        **kwargs
    ):
        self.resource_type = resource_type
        self.conflicting_field = conflicting_field
        super().__init__(message, error_code="RESOURCE_CONFLICT", **kwargs)


class EmptyInputError(TestbenchException):
    """테스트 케이스가 없는 테스트 세트 실행 요청 예외"""

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        **kwargs
    ):
        self.resource_id = resource_id
        super().__init__(message, error_code="EMPTY_INPUT", **kwargs)


class RunConflictError(TestbenchException):
    """동일 테스트 세트가 이미 실행 중인 경우의 예외"""

    def __init__(
        self,
        message: str,
        test_set_id: Optional[str] = None,
        **kwargs
    ):
        self.test_set_id = test_set_id
        super().__init__(message, error_code="RUN_CONFLICT", **kwargs)


class AnswererError(TestbenchException):
    """응답 서비스 호출 실패 예외"""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message, error_code="ANSWERER_ERROR", **kwargs)


class ScorerError(TestbenchException):
    """채점 실패 예외"""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        **kwargs
    ):
        self.model_name = model_name
        super().__init__(message, error_code="SCORER_ERROR", **kwargs)


# 예외 매핑 (HTTP 상태 코드)
EXCEPTION_STATUS_MAP = {
    ValidationError: 400,
    EmptyInputError: 400,
    ResourceNotFoundError: 404,
    ResourceConflictError: 409,
    RunConflictError: 409,
    UnsupportedFormatError: 415,
    AnswererError: 502,
    ScorerError: 502,
    ConfigurationError: 500,
    TestbenchException: 500,
}


def get_http_status_code(exception: Exception) -> int:
    """
    예외 타입에 따른 HTTP 상태 코드 반환

    Args:
        exception: 예외 인스턴스

    Returns:
        int: HTTP 상태 코드
    """
    for exc_type, status_code in EXCEPTION_STATUS_MAP.items():
        if isinstance(exception, exc_type):
            return status_code

    return 500


def format_error_response(exception: TestbenchException) -> Dict[str, Any]:
    """
    예외를 API 에러 응답 형식으로 변환

    Args:
        exception: TestBench 예외 인스턴스

    Returns:
        Dict[str, Any]: 에러 응답 딕셔너리
    """
    response = {
        "error": True,
        "error_code": exception.error_code or "UNKNOWN_ERROR",
        "message": exception.message,
        "details": exception.details
    }

    if getattr(exception, "field", None):
        response["field"] = exception.field

    if getattr(exception, "resource_type", None):
        response["resource_type"] = exception.resource_type

    if getattr(exception, "resource_id", None):
        response["resource_id"] = exception.resource_id

    return response


class ExceptionHandler:
    """예외 처리 헬퍼 클래스"""

    @staticmethod
    def handle_database_errors(
        error: Exception,
        resource_type: Optional[str] = None
    ) -> TestbenchException:
        """
        데이터베이스 에러를 커스텀 예외로 변환

        Args:
            error: 데이터베이스 예외
            resource_type: 작업 대상 리소스 타입

        Returns:
            TestbenchException: 변환된 예외
        """
        error_str = str(error).lower()

        if "unique" in error_str or "duplicate" in error_str:
            return ResourceConflictError(
                message="Resource already exists",
                resource_type=resource_type,
                details={"original_error": str(error)}
            )

        if "foreign key" in error_str:
            return ValidationError(
                message="Referenced resource does not exist",
                details={"original_error": str(error)}
            )

        if "not null" in error_str:
            return ValidationError(
                message="Required field is missing",
                details={"original_error": str(error)}
            )

        return TestbenchException(
            message="Database operation failed",
            error_code="DATABASE_ERROR",
            details={"original_error": str(error)}
        )
