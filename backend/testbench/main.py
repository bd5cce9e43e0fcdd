# testbench/backend/testbench/main.py
"""
TestBench 백엔드 메인 애플리케이션 파일

이 파일은 FastAPI 애플리케이션의 진입점으로,
모든 라우터를 통합하고 미들웨어와 예외 처리기를 설정합니다.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

from testbench.api.v1.router import api_router
from testbench.core.config import settings
from testbench.db.session import engine, init_db
from testbench.services.run_orchestrator import RunGuard
from testbench.utils.exceptions import TestbenchException, format_error_response, get_http_status_code
from testbench.utils.logger import logger, log_error, log_request, log_response

# Prometheus 메트릭 정의
REQUEST_COUNT = Counter(
    'testbench_requests_total',
    'Total number of requests',
    ['method', 'endpoint', 'status']
)
REQUEST_DURATION = Histogram(
    'testbench_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint']
)
ACTIVE_RUNS = Gauge(
    'testbench_active_runs',
    'Number of test sets currently running'
)


def _endpoint_label(request: Request) -> str:
    """메트릭 라벨용 경로 템플릿 (ID가 포함된 경로를 하나로 묶음)"""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 생명주기 관리

    시작 시: 데이터베이스 테이블 생성
    종료 시: 엔진 정리
    """
    logger.info("TestBench 백엔드 서버를 시작합니다...")

    await init_db()

    yield

    logger.info("TestBench 백엔드 서버를 종료합니다...")
    await engine.dispose()


# FastAPI 애플리케이션 인스턴스 생성
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="답변 품질 테스트 벤치 API",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    lifespan=lifespan
)

# 테스트 세트 동시 실행 방지 (프로세스 전역)
app.state.run_guard = RunGuard()

# CORS 미들웨어 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    """
    요청 ID 부여, 접근 로그와 Prometheus 메트릭 기록

    응답 헤더에 X-Request-ID, X-Process-Time을 추가합니다.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    client_ip = request.client.host if request.client else None
    started = time.perf_counter()

    log_request(request_id, request.method, request.url.path, client_ip)

    response = await call_next(request)
    elapsed = time.perf_counter() - started

    endpoint = _endpoint_label(request)
    REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=response.status_code).inc()
    REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(elapsed)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{elapsed:.6f}"
    log_response(request_id, response.status_code, elapsed, endpoint=endpoint)

    return response


@app.exception_handler(TestbenchException)
async def testbench_exception_handler(request: Request, exc: TestbenchException):
    """TestBench 예외를 상태 코드와 JSON 오류 본문으로 변환"""
    status_code = get_http_status_code(exc)

    if status_code >= 500:
        log_error(type(exc).__name__, exc.message, path=request.url.path, error_code=exc.error_code)
    else:
        logger.warning(f"{request.method} {request.url.path} → {status_code} {exc.error_code}: {exc.message}")

    return JSONResponse(status_code=status_code, content=format_error_response(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """처리되지 않은 예외는 500으로 응답하고 오류 로거에 기록"""
    log_error(
        type(exc).__name__,
        str(exc),
        request_method=request.method,
        request_url=str(request.url),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "INTERNAL_SERVER_ERROR",
            "message": "내부 서버 오류가 발생했습니다.",
            "details": {}
        }
    )


app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/", response_model=Dict[str, Any])
async def root():
    """서비스 이름 / 버전과 주요 경로"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "api": f"{settings.API_PREFIX}/tests",
        "docs": f"{settings.API_PREFIX}/docs",
        "health": "/health"
    }


@app.get("/health", response_model=Dict[str, Any])
async def health_check(request: Request):
    """
    헬스체크 엔드포인트

    실행 중인 테스트 세트 수를 함께 반환합니다.
    """
    return {
        "status": "healthy",
        "active_runs": len(request.app.state.run_guard.running_sets),
        "scorer_backend": settings.SCORER_BACKEND,
        "timestamp": time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())
    }


@app.get("/metrics")
async def metrics(request: Request):
    """Prometheus 메트릭 (텍스트 노출 형식)"""
    ACTIVE_RUNS.set(len(request.app.state.run_guard.running_sets))

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "testbench.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
