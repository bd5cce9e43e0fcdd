# testbench/backend/testbench/api/v1/tests.py
"""
테스트 API 엔드포인트

테스트 세트 업로드 / 조회, 실행, 결과 조회 / 내보내기 기능을 제공합니다.
오류는 TestbenchException 핸들러가 HTTP 응답으로 변환합니다.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from starlette.responses import Response

from testbench.core.config import settings
from testbench.core.dependencies import get_run_test_service, get_test_service
from testbench.schemas.test_run import RunRowsResponse, RunSummary, TestRunRead
from testbench.schemas.test_set import TestSetDetail, TestSetRead, TestSetUploadResponse
from testbench.services.test_service import TestService
from testbench.utils.logger import logger

# API 라우터 생성
router = APIRouter(
    responses={
        404: {"description": "Test set or run not found"},
        500: {"description": "Internal server error"}
    }
)


@router.post("/upload", response_model=TestSetUploadResponse, status_code=201)
async def upload_test_set(
    file: UploadFile = File(...),
    name: Optional[str] = Form(default=None),
    project: Optional[str] = Form(default=None),
    service: TestService = Depends(get_test_service)
) -> TestSetUploadResponse:
    """
    테스트 세트 업로드 (CSV / XLSX / XLS)

    Args:
        file: 업로드 파일 (id, input, expected 컬럼 필수)
        name: 표시 이름 (없으면 파일명)
        project: 프로젝트 라벨

    Returns:
        TestSetUploadResponse: 생성된 테스트 세트와 케이스 수
    """
    content = await file.read()
    logger.info(f"테스트 세트 업로드 요청: {file.filename} ({len(content)} bytes)")

    return await service.upload_test_set(
        content,
        file.filename or "",
        name=name,
        project=project
    )


@router.get("/sets", response_model=List[TestSetRead])
async def list_test_sets(
    keywords: Optional[str] = None,
    offset: int = Query(default=0),
    limit: int = Query(default=settings.DEFAULT_LIST_LIMIT),
    service: TestService = Depends(get_test_service)
):
    """테스트 세트 목록 (최신순, 검색어는 이름 / 파일명 / 프로젝트에 적용)"""
    return await service.list_test_sets(keywords=keywords, offset=offset, limit=limit)


@router.get("/sets/{test_set_id}", response_model=TestSetDetail)
async def get_test_set(
    test_set_id: str,
    service: TestService = Depends(get_test_service)
):
    """테스트 세트 상세 (케이스 포함)"""
    return await service.get_test_set(test_set_id)


@router.post("/sets/{test_set_id}/run", response_model=RunSummary)
async def run_test_set(
    test_set_id: str,
    service: TestService = Depends(get_run_test_service)
) -> RunSummary:
    """
    테스트 세트 실행

    모든 케이스를 순서대로 실행하고 완료 후 요약을 반환합니다.

    Returns:
        RunSummary: 전체 / 성공 / 실패 케이스 수
    """
    return await service.run_test_set(test_set_id)


@router.get("/sets/{test_set_id}/runs", response_model=List[TestRunRead])
async def list_runs_for_set(
    test_set_id: str,
    service: TestService = Depends(get_test_service)
):
    """테스트 세트의 실행 이력 (최신순)"""
    return await service.list_runs_for_set(test_set_id)


@router.get("/runs/{test_run_id}", response_model=TestRunRead)
async def get_run(
    test_run_id: str,
    service: TestService = Depends(get_test_service)
):
    """테스트 실행 조회"""
    return await service.get_run(test_run_id)


@router.get("/runs/{test_run_id}/results", response_model=RunRowsResponse)
async def get_run_rows(
    test_run_id: str,
    service: TestService = Depends(get_test_service)
) -> RunRowsResponse:
    """테스트 케이스별 실행 결과"""
    rows = await service.get_run_rows(test_run_id)
    return RunRowsResponse(rows=rows)


@router.get("/runs/{test_run_id}/download")
async def download_run_rows(
    test_run_id: str,
    format: str = Query(default="xlsx", description="csv 또는 xlsx"),
    service: TestService = Depends(get_test_service)
) -> Response:
    """
    실행 결과 파일 다운로드

    Args:
        test_run_id: 테스트 실행 ID
        format: 내보내기 형식 (csv 외 값은 xlsx)

    Returns:
        Response: 첨부 파일 응답
    """
    content, content_type, filename = await service.download_run_rows(test_run_id, format)

    return Response(
        content=content,
        media_type=content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"'
        }
    )
