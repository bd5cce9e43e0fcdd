# testbench/backend/testbench/utils/logger.py
"""
로깅 설정 모듈

애플리케이션 / 접근 / 오류 / 감사 로거를 구성합니다.
운영 환경에서는 JSON, DEBUG 모드에서는 사람이 읽기 쉬운 형식으로 출력합니다.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from testbench.core.config import settings

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    커스텀 JSON 포매터

    모든 레코드에 시각, 레벨, 호출 위치와 애플리케이션 정보를 붙입니다.
    """

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault('timestamp', datetime.utcnow().isoformat())
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno
        log_record['app_name'] = settings.APP_NAME
        log_record['app_version'] = settings.APP_VERSION
        log_record['environment'] = "development" if settings.DEBUG else "production"


def _build_formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        return CustomJsonFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')


def setup_logger(
    name: Optional[str] = None,
    level: Optional[str] = None,
    log_file: Optional[Path] = None
) -> logging.Logger:
    """
    로거 설정

    Args:
        name: 로거 이름 (기본값: APP_NAME)
        level: 로그 레벨 (기본값: LOG_LEVEL)
        log_file: 추가로 JSON 로그를 남길 파일 경로

    Returns:
        logging.Logger: 설정된 로거
    """
    logger = logging.getLogger(name or settings.APP_NAME)
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    logger.setLevel(log_level)
    logger.handlers = []
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(_build_formatter(json_output=not settings.DEBUG))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(_build_formatter(json_output=True))
        logger.addHandler(file_handler)

    return logger


_log_file = Path(settings.LOG_FILE) if settings.LOG_FILE else None

# 애플리케이션 로거
logger = setup_logger(log_file=_log_file)

# 요청 / 오류 / 감사 로거
access_logger = setup_logger(f"{settings.APP_NAME}.access", "INFO", log_file=_log_file)
error_logger = setup_logger(f"{settings.APP_NAME}.error", "ERROR", log_file=_log_file)
audit_logger = setup_logger(f"{settings.APP_NAME}.audit", "INFO", log_file=_log_file)


def log_request(request_id: str, method: str, path: str, client_ip: Optional[str], **kwargs):
    """HTTP 요청 수신 기록"""
    access_logger.info(
        f"{method} {path}",
        extra={"request_id": request_id, "method": method, "path": path, "client_ip": client_ip, **kwargs}
    )


def log_response(request_id: str, status_code: int, response_time: float, **kwargs):
    """HTTP 응답 기록 (응답 시간은 밀리초로 변환)"""
    access_logger.info(
        f"응답 {status_code}",
        extra={
            "request_id": request_id,
            "status_code": status_code,
            "response_time_ms": int(response_time * 1000),
            **kwargs
        }
    )


def log_error(error_type: str, error_message: str, request_id: Optional[str] = None, **kwargs):
    """
    오류 로거 기록

    처리 중인 예외가 있으면 스택 트레이스도 함께 남깁니다.
    """
    error_logger.error(
        f"{error_type}: {error_message}",
        extra={"error_type": error_type, "request_id": request_id, **kwargs},
        exc_info=sys.exc_info()[0] is not None
    )


def log_audit(action: str, resource_type: str, resource_id: str, result: str, **kwargs):
    """
    감사 로깅

    테스트 세트 업로드, 테스트 실행 종료처럼 데이터가 바뀌는 작업을 기록합니다.

    Args:
        action: 수행된 작업 (upload, run)
        resource_type: 리소스 타입 (test_set, test_run)
        resource_id: 리소스 ID
        result: 작업 결과 (success, completed, failed)
        **kwargs: 케이스 수 등 추가 정보
    """
    audit_logger.info(
        f"{action} {resource_type} {resource_id}: {result}",
        extra={
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "result": result,
            **kwargs
        }
    )
