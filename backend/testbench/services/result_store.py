# testbench/backend/testbench/services/result_store.py
"""
실행 결과 저장소

테스트 실행(TestRun)과 케이스별 결과(Result)의 저장 / 조회,
실행 상태 전이를 담당합니다.
"""

from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from testbench.models.test_run import TestRun, RunStatus
from testbench.models.result import Result
from testbench.utils.exceptions import ExceptionHandler, ResourceNotFoundError
from testbench.utils.logger import logger


class ResultStore:
    """TestRun / Result 저장소"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_run(self, test_set_id: str) -> TestRun:
        """실행 기록을 running 상태로 생성"""
        run = TestRun(test_set_id=test_set_id, status=RunStatus.RUNNING.value)
        self.session.add(run)
        await self.session.commit()
        return run

    async def finish_run(self, run: TestRun, status: RunStatus) -> TestRun:
        """
        실행 종료 처리 (running → completed / failed)

        실패 처리 시에는 진행 중이던 트랜잭션을 먼저 롤백하므로
        이미 커밋된 결과 외에는 저장되지 않습니다.

        Args:
            run: 종료할 실행
            status: 최종 상태

        Returns:
            TestRun: 갱신된 실행
        """
        if status not in (RunStatus.COMPLETED, RunStatus.FAILED):
            raise ValueError(f"종료 상태가 아닙니다: {status}")

        if run.status != RunStatus.RUNNING.value:
            raise ValueError(f"이미 종료된 실행입니다: {run.id} ({run.status})")

        if status is RunStatus.FAILED:
            await self.session.rollback()

        run.status = status.value
        run.completed_at = datetime.utcnow()
        self.session.add(run)
        await self.session.commit()
        # 롤백으로 만료된 속성 다시 로드
        await self.session.refresh(run)

        return run

    async def add_result(
        self,
        test_run_id: str,
        test_case_id: str,
        actual: str,
        score: float,
        reasoning: str
    ) -> Result:
        """
        케이스 결과 저장 (실행당 케이스별 1건)

        Raises:
            ResourceConflictError: 같은 실행에 같은 케이스 결과가 이미 있는 경우
        """
        result = Result(
            test_run_id=test_run_id,
            test_case_id=test_case_id,
            actual=actual,
            score=score,
            reasoning=reasoning,
        )

        try:
            self.session.add(result)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.error(f"결과 중복 저장 시도: run={test_run_id}, case={test_case_id}")
            raise ExceptionHandler.handle_database_errors(e, resource_type="result") from e

        return result

    async def get_run(self, test_run_id: str) -> TestRun:
        """실행 조회 (없으면 ResourceNotFoundError)"""
        run = await self.session.get(TestRun, test_run_id)

        if run is None:
            raise ResourceNotFoundError(
                f"테스트 실행을 찾을 수 없습니다: {test_run_id}",
                resource_type="test_run",
                resource_id=test_run_id
            )

        return run

    async def list_runs_for_set(self, test_set_id: str) -> List[TestRun]:
        """테스트 세트의 실행 이력 (최신순)"""
        result = await self.session.execute(
            select(TestRun)
            .where(TestRun.test_set_id == test_set_id)
            .order_by(TestRun.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_results(self, test_run_id: str) -> List[Result]:
        """실행의 케이스별 결과 (생성 순)"""
        result = await self.session.execute(
            select(Result)
            .where(Result.test_run_id == test_run_id)
            .order_by(Result.created_at)
        )
        return list(result.scalars().all())
