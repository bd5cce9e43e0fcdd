# testbench/backend/testbench/services/result_assembler.py
"""
실행 결과 조립

테스트 케이스와 실행 결과를 케이스 순서대로 합쳐 내보내기용 행을 만듭니다.
"""

from typing import Any, Dict, List

from testbench.services.result_store import ResultStore
from testbench.services.test_catalog import TestCatalog


class ResultAssembler:
    """테스트 케이스 + 실행 결과 행 조립기"""

    def __init__(self, catalog: TestCatalog, result_store: ResultStore):
        self.catalog = catalog
        self.result_store = result_store

    async def rows_for_run(self, test_run_id: str) -> List[Dict[str, Any]]:
        """
        실행의 케이스별 행 조립

        결과가 없는 케이스(실행 이후 추가된 케이스 등)는
        actual="", score=0, reasoning="" 기본값으로 채웁니다.

        Args:
            test_run_id: 테스트 실행 ID

        Returns:
            List[Dict[str, Any]]: id, input, expected, 추가 컬럼, actual, score, reasoning

        Raises:
            ResourceNotFoundError: 실행이 없는 경우
        """
        run = await self.result_store.get_run(test_run_id)
        test_cases = await self.catalog.list_test_cases(run.test_set_id)
        results = await self.result_store.list_results(run.id)

        results_by_case = {result.test_case_id: result for result in results}

        rows = []
        for test_case in test_cases:
            result = results_by_case.get(test_case.id)
            rows.append({
                **test_case.to_row(),
                "actual": result.actual if result else "",
                "score": result.score if result else 0,
                "reasoning": result.reasoning if result else "",
            })

        return rows
