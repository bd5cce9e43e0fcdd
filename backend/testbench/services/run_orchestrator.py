# testbench/backend/testbench/services/run_orchestrator.py
"""
테스트 실행 오케스트레이터

테스트 세트의 케이스를 순서대로 Answerer / Scorer에 전달하고,
케이스별 결과를 저장한 뒤 실행 상태를 확정합니다.

케이스 단위 실패(Answerer / Scorer 오류, 타임아웃)는 점수 0의 결과로 기록되고
실행은 계속됩니다. 저장소 장애처럼 케이스 밖에서 발생한 오류만 실행을 failed로 만듭니다.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Set, Union

from testbench.models.test_run import RunStatus
from testbench.schemas.test_run import RunSummary
from testbench.services.answerer import BaseAnswerer
from testbench.services.result_store import ResultStore
from testbench.services.scorer import BaseScorer
from testbench.services.test_catalog import TestCatalog
from testbench.utils.exceptions import EmptyInputError, RunConflictError
from testbench.utils.logger import logger, log_audit

ERROR_REASONING_PREFIX = "ERROR: "

# 진행률 로깅 간격 (케이스 수)
PROGRESS_LOG_INTERVAL = 10


@dataclass(frozen=True)
class CaseSuccess:
    """케이스 실행 성공"""
    answer: str
    score: float
    reasoning: str


@dataclass(frozen=True)
class CaseFailure:
    """케이스 실행 실패 (Answerer / Scorer 오류)"""
    message: str

    @property
    def reasoning(self) -> str:
        return f"{ERROR_REASONING_PREFIX}{self.message}"


CaseOutcome = Union[CaseSuccess, CaseFailure]


class RunGuard:
    """
    테스트 세트별 동시 실행 방지

    같은 프로세스에서 이미 실행 중인 테스트 세트에 대한 실행 요청을 거부합니다.
    """

    def __init__(self):
        self.running_sets: Set[str] = set()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def hold(self, test_set_id: str) -> AsyncIterator[None]:
        async with self._lock:
            if test_set_id in self.running_sets:
                raise RunConflictError(
                    f"테스트 세트 '{test_set_id}'가 이미 실행 중입니다.",
                    test_set_id=test_set_id
                )
            self.running_sets.add(test_set_id)

        try:
            yield
        finally:
            async with self._lock:
                self.running_sets.discard(test_set_id)

    def is_running(self, test_set_id: str) -> bool:
        return test_set_id in self.running_sets


class RunOrchestrator:
    """
    테스트 실행 오케스트레이터

    저장소와 외부 협력자는 모두 생성 시 주입됩니다.
    """

    def __init__(
        self,
        catalog: TestCatalog,
        result_store: ResultStore,
        answerer: BaseAnswerer,
        scorer: BaseScorer,
        run_guard: RunGuard,
        case_timeout: float = 120.0
    ):
        self.catalog = catalog
        self.result_store = result_store
        self.answerer = answerer
        self.scorer = scorer
        self.run_guard = run_guard
        self.case_timeout = case_timeout

    async def execute(self, test_set_id: str) -> RunSummary:
        """
        테스트 세트 실행

        Args:
            test_set_id: 실행할 테스트 세트 ID

        Returns:
            RunSummary: 전체 / 성공 / 실패 케이스 수

        Raises:
            ResourceNotFoundError: 테스트 세트가 없는 경우
            EmptyInputError: 테스트 케이스가 0개인 경우 (실행 기록 미생성)
            RunConflictError: 같은 테스트 세트가 이미 실행 중인 경우
        """
        test_set = await self.catalog.get_test_set(test_set_id)
        test_cases = await self.catalog.list_test_cases(test_set.id)

        if not test_cases:
            raise EmptyInputError(
                f"테스트 세트에 테스트 케이스가 없습니다: {test_set_id}",
                resource_id=test_set_id
            )

        set_id = test_set.id

        async with self.run_guard.hold(set_id):
            run = await self.result_store.create_run(set_id)
            run_id = run.id
            total = len(test_cases)
            success_count = 0
            failed_count = 0

            logger.info(f"테스트 실행 시작: run={run_id}, set={set_id}, 케이스 수={total}")

            try:
                for index, test_case in enumerate(test_cases, 1):
                    outcome = await self._evaluate_case(test_case.to_row())

                    if isinstance(outcome, CaseSuccess):
                        await self.result_store.add_result(
                            test_run_id=run_id,
                            test_case_id=test_case.id,
                            actual=outcome.answer,
                            score=outcome.score,
                            reasoning=outcome.reasoning,
                        )
                        success_count += 1
                    else:
                        logger.warning(
                            f"테스트 케이스 실행 실패: run={run_id}, case={test_case.case_id}, {outcome.message}"
                        )
                        await self.result_store.add_result(
                            test_run_id=run_id,
                            test_case_id=test_case.id,
                            actual="",
                            score=0.0,
                            reasoning=outcome.reasoning,
                        )
                        failed_count += 1

                    if index % PROGRESS_LOG_INTERVAL == 0:
                        logger.info(f"테스트 실행 {run_id}: {index}/{total} 완료")

            except Exception as e:
                logger.error(f"테스트 실행 중 오류: run={run_id}, {type(e).__name__}: {str(e)}")
                try:
                    await self.result_store.finish_run(run, RunStatus.FAILED)
                except Exception as mark_error:
                    logger.error(f"실행 실패 상태 기록 중 오류: run={run_id}, {str(mark_error)}")

                log_audit("run", "test_run", run_id, RunStatus.FAILED.value, test_set_id=set_id)
                raise

            await self.result_store.finish_run(run, RunStatus.COMPLETED)

        logger.info(
            f"테스트 실행 완료: run={run_id} (성공 {success_count}, 실패 {failed_count}, 전체 {total})"
        )
        log_audit(
            "run",
            "test_run",
            run_id,
            RunStatus.COMPLETED.value,
            test_set_id=set_id,
            total=total,
            success_count=success_count,
            failed_count=failed_count
        )

        return RunSummary(
            test_run_id=run_id,
            test_set_id=set_id,
            status=RunStatus.COMPLETED.value,
            total=total,
            success_count=success_count,
            failed_count=failed_count,
        )

    async def _evaluate_case(self, row: Dict[str, Any]) -> CaseOutcome:
        """
        케이스 하나를 Answerer → Scorer 순서로 실행

        Answerer / Scorer의 모든 오류와 타임아웃은 CaseFailure로 변환되어 반환됩니다.
        타임아웃은 답변 생성과 채점을 합친 시간에 적용됩니다.
        """
        try:
            return await asyncio.wait_for(self._answer_and_score(row), timeout=self.case_timeout)
        except asyncio.TimeoutError:
            return CaseFailure(message=f"timed out after {self.case_timeout:g}s")
        except Exception as e:
            return CaseFailure(message=str(e) or type(e).__name__)

    async def _answer_and_score(self, row: Dict[str, Any]) -> CaseSuccess:
        answer = await self.answerer.respond(row)
        verdict = await self.scorer.score(row["input"], row["expected"], answer.answer)
        return CaseSuccess(answer=answer.answer, score=float(verdict.score), reasoning=verdict.reasoning)
