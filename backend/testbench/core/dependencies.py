# testbench/backend/testbench/core/dependencies.py
"""
의존성 주입 모듈

FastAPI의 의존성 주입 시스템을 위한 공통 의존성들을 정의합니다.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from testbench.core.config import Settings, get_settings
from testbench.db.session import get_db
from testbench.services.answerer import BaseAnswerer, build_answerer
from testbench.services.run_orchestrator import RunGuard
from testbench.services.scorer import BaseScorer, build_scorer
from testbench.services.test_service import TestService


def get_answerer(
    request: Request,
    config: Annotated[Settings, Depends(get_settings)]
) -> BaseAnswerer:
    """
    설정된 Answerer

    처음 요청될 때 한 번 생성해 애플리케이션 state에 보관합니다.
    """
    answerer = getattr(request.app.state, "answerer", None)
    if answerer is None:
        answerer = build_answerer(config)
        request.app.state.answerer = answerer
    return answerer


def get_scorer(
    request: Request,
    config: Annotated[Settings, Depends(get_settings)]
) -> BaseScorer:
    """설정된 Scorer (처음 요청될 때 한 번 생성)"""
    scorer = getattr(request.app.state, "scorer", None)
    if scorer is None:
        scorer = build_scorer(config)
        request.app.state.scorer = scorer
    return scorer


def get_run_guard(request: Request) -> RunGuard:
    """
    프로세스 전역 실행 가드

    애플리케이션 state에 보관된 하나의 RunGuard를 모든 요청이 공유합니다.
    """
    return request.app.state.run_guard


async def get_test_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    run_guard: Annotated[RunGuard, Depends(get_run_guard)]
) -> TestService:
    """
    요청 단위 TestService (조회 / 업로드 / 내보내기용)

    Answerer와 Scorer를 만들지 않으므로 채점 설정 오류와 무관하게 동작합니다.
    """
    return TestService(db, run_guard=run_guard)


async def get_run_test_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    answerer: Annotated[BaseAnswerer, Depends(get_answerer)],
    scorer: Annotated[BaseScorer, Depends(get_scorer)],
    run_guard: Annotated[RunGuard, Depends(get_run_guard)]
) -> TestService:
    """
    실행용 TestService

    Args:
        db: 데이터베이스 세션
        answerer: Answerer
        scorer: Scorer
        run_guard: 실행 가드

    Returns:
        TestService: Answerer / Scorer가 연결된 테스트 서비스
    """
    return TestService(db, run_guard=run_guard, answerer=answerer, scorer=scorer)
