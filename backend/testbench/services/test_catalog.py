# testbench/backend/testbench/services/test_catalog.py
"""
테스트 카탈로그

테스트 세트와 테스트 케이스의 저장 / 조회를 담당합니다.
(테스트 세트, 케이스 id) 유일성과 케이스 순서는 이 계층에서 보장됩니다.
"""

from typing import List, Optional, Sequence

from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from testbench.core.config import settings
from testbench.models.test_set import TestSet
from testbench.models.test_case import TestCase
from testbench.utils.exceptions import ExceptionHandler, ResourceNotFoundError
from testbench.utils.file_parser import CaseRow
from testbench.utils.logger import logger


class TestCatalog:
    """테스트 세트 / 테스트 케이스 저장소"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_test_set(
        self,
        name: str,
        filename: str,
        project: Optional[str],
        rows: Sequence[CaseRow]
    ) -> TestSet:
        """
        테스트 세트와 케이스를 하나의 트랜잭션으로 생성

        Args:
            name: 표시 이름
            filename: 원본 파일명
            project: 프로젝트 라벨
            rows: 검증된 테스트 케이스 행

        Returns:
            TestSet: 생성된 테스트 세트

        Raises:
            ResourceConflictError: 같은 세트 안에 중복된 케이스 id가 있는 경우
        """
        test_set = TestSet(name=name, filename=filename, project=project)

        try:
            self.session.add(test_set)
            await self.session.flush()

            self.session.add_all([
                TestCase(
                    test_set_id=test_set.id,
                    case_id=row.case_id,
                    input=row.input,
                    expected=row.expected,
                    additional_context=row.extra,
                    position=position,
                )
                for position, row in enumerate(rows)
            ])
            await self.session.commit()

        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"테스트 세트 저장 중 유일성 위반: {filename}")
            raise ExceptionHandler.handle_database_errors(e, resource_type="test_case") from e

        logger.info(f"테스트 세트 생성: {test_set.id} ({len(rows)}개 케이스)")
        return test_set

    async def get_test_set(self, test_set_id: str) -> TestSet:
        """테스트 세트 조회 (없으면 ResourceNotFoundError)"""
        test_set = await self.session.get(TestSet, test_set_id)

        if test_set is None:
            raise ResourceNotFoundError(
                f"테스트 세트를 찾을 수 없습니다: {test_set_id}",
                resource_type="test_set",
                resource_id=test_set_id
            )

        return test_set

    async def list_test_sets(
        self,
        keywords: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[TestSet]:
        """
        테스트 세트 목록 조회 (최신순)

        Args:
            keywords: 이름 / 파일명 / 프로젝트 부분 일치 검색어 (대소문자 무시)
            offset: 건너뛸 항목 수
            limit: 조회할 최대 항목 수 (1 ~ MAX_LIST_LIMIT)

        Returns:
            List[TestSet]: 테스트 세트 목록
        """
        offset = max(0, offset or 0)
        if limit is None:
            limit = settings.DEFAULT_LIST_LIMIT
        limit = max(1, min(settings.MAX_LIST_LIMIT, limit))

        query = select(TestSet)

        keywords = (keywords or "").strip()
        if keywords:
            pattern = f"%{keywords.lower()}%"
            query = query.where(
                or_(
                    func.lower(TestSet.name).like(pattern),
                    func.lower(TestSet.filename).like(pattern),
                    func.lower(TestSet.project).like(pattern),
                )
            )

        query = query.order_by(TestSet.created_at.desc()).offset(offset).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_test_cases(self, test_set_id: str) -> List[TestCase]:
        """테스트 세트의 케이스를 업로드 순서대로 조회"""
        result = await self.session.execute(
            select(TestCase)
            .where(TestCase.test_set_id == test_set_id)
            .order_by(TestCase.position, TestCase.created_at)
        )
        return list(result.scalars().all())

    async def add_test_case(self, test_set_id: str, row: CaseRow) -> TestCase:
        """
        기존 세트에 테스트 케이스 한 건 추가

        업로드 이후 추가된 케이스는 기존 실행 결과와 매칭되지 않습니다.
        """
        count = await self.session.scalar(
            select(func.count()).select_from(TestCase).where(TestCase.test_set_id == test_set_id)
        )

        test_case = TestCase(
            test_set_id=test_set_id,
            case_id=row.case_id,
            input=row.input,
            expected=row.expected,
            additional_context=row.extra,
            position=count or 0,
        )

        try:
            self.session.add(test_case)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ExceptionHandler.handle_database_errors(e, resource_type="test_case") from e

        return test_case
