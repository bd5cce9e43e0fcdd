# testbench/backend/testbench/api/v1/router.py
"""
API 라우터 통합 모듈

모든 API 엔드포인트를 하나의 라우터로 통합합니다.
"""

from fastapi import APIRouter

from testbench.api.v1 import tests

# 메인 API 라우터 생성
api_router = APIRouter()

api_router.include_router(
    tests.router,
    prefix="/tests",
    tags=["tests"]
)
