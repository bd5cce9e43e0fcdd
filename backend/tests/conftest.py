# testbench/backend/tests/conftest.py
"""
pytest 설정 및 공통 픽스처

모든 테스트에서 사용할 공통 설정과 픽스처들을 정의합니다.
"""

import asyncio
from typing import Any, AsyncGenerator, Dict, Iterable, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from testbench.main import app
from testbench.db.session import build_engine, build_session_factory, get_db, init_db
from testbench.core.dependencies import get_answerer, get_scorer
from testbench.schemas.scoring import AnswerResponse
from testbench.services.answerer import BaseAnswerer
from testbench.services.result_store import ResultStore
from testbench.services.run_orchestrator import RunGuard
from testbench.services.scorer import ExactMatchScorer
from testbench.services.test_catalog import TestCatalog
from testbench.utils.exceptions import AnswererError
from testbench.utils.file_parser import CaseRow


# 테스트용 비동기 데이터베이스 URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SAMPLE_CSV = (
    "id,input,expected,topic\n"
    "1,2+2?,4,math\n"
    "2,3+3?,6,math\n"
    "3,capital of France?,Paris,geo\n"
).encode("utf-8")


class FakeAnswerer(BaseAnswerer):
    """
    테스트용 Answerer

    케이스 id별 답변 / 실패 / 지연을 지정할 수 있고, 받은 행을 순서대로 기록합니다.
    지정되지 않은 케이스는 기대 출력을 그대로 답합니다.
    """

    def __init__(
        self,
        answers: Optional[Dict[str, str]] = None,
        failures: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None
    ):
        self.answers = dict(answers or {})
        self.failures = set(failures)
        self.delays = dict(delays or {})
        self.calls: List[Dict[str, Any]] = []

    async def respond(self, row: Dict[str, Any]) -> AnswerResponse:
        self.calls.append(dict(row))
        case_id = row["id"]

        if case_id in self.delays:
            await asyncio.sleep(self.delays[case_id])

        if case_id in self.failures:
            raise AnswererError(f"answerer unavailable for case {case_id}", endpoint="fake")

        return AnswerResponse(answer=self.answers.get(case_id, row["expected"]))


def make_rows(count: int, **extra: Any) -> List[CaseRow]:
    """id가 1부터 시작하는 테스트 케이스 행 생성"""
    return [
        CaseRow(case_id=str(i), input=f"question {i}", expected=f"answer {i}", extra=dict(extra))
        for i in range(1, count + 1)
    ]


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    테스트용 데이터베이스 엔진 픽스처

    각 테스트마다 새로운 인메모리 데이터베이스를 생성합니다.
    """
    test_engine = build_engine(TEST_DATABASE_URL)
    await init_db(test_engine)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """테스트용 데이터베이스 세션 픽스처"""
    async with build_session_factory(engine)() as session:
        yield session


@pytest.fixture
def catalog(db: AsyncSession) -> TestCatalog:
    return TestCatalog(db)


@pytest.fixture
def result_store(db: AsyncSession) -> ResultStore:
    return ResultStore(db)


@pytest.fixture
def answerer() -> FakeAnswerer:
    return FakeAnswerer()


@pytest.fixture
def scorer() -> ExactMatchScorer:
    return ExactMatchScorer()


@pytest.fixture
def run_guard() -> RunGuard:
    return RunGuard()


@pytest_asyncio.fixture
async def client(
    db: AsyncSession,
    answerer: FakeAnswerer,
    scorer: ExactMatchScorer,
    run_guard: RunGuard
) -> AsyncGenerator[AsyncClient, None]:
    """
    테스트용 HTTP 클라이언트 픽스처

    FastAPI 앱을 테스트 데이터베이스와 가짜 Answerer / Scorer에 연결합니다.
    """
    async def get_test_db():
        yield db

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_answerer] = lambda: answerer
    app.dependency_overrides[get_scorer] = lambda: scorer

    previous_guard = app.state.run_guard
    app.state.run_guard = run_guard

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.state.run_guard = previous_guard
    app.dependency_overrides.clear()
