# testbench/backend/tests/test_test_service.py
"""
테스트 서비스 테스트

업로드 검증, 세트 상세 조회, 결과 내보내기를 테스트합니다.
"""

import io

import pytest
from openpyxl import load_workbook
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from testbench.core.config import Settings, settings
from testbench.models import TestCase, TestSet
from testbench.services.run_orchestrator import RunGuard
from testbench.services.scorer import ExactMatchScorer
from testbench.services.test_service import TestService
from testbench.utils.exceptions import (
    ConfigurationError,
    ResourceConflictError,
    ResourceNotFoundError,
    UnsupportedFormatError,
    ValidationError,
)

from conftest import SAMPLE_CSV, FakeAnswerer

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def service(db: AsyncSession, answerer: FakeAnswerer) -> TestService:
    return TestService(db, answerer=answerer, scorer=ExactMatchScorer(), run_guard=RunGuard())


async def count(db: AsyncSession, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


class TestUpload:
    """테스트 세트 업로드 테스트"""

    async def test_upload_csv(self, db: AsyncSession, service: TestService):
        response = await service.upload_test_set(SAMPLE_CSV, "cases.csv", project="  ")

        assert response.name == "cases.csv"
        assert response.filename == "cases.csv"
        assert response.project is None
        assert response.test_case_count == 3
        assert await count(db, TestSet) == 1
        assert await count(db, TestCase) == 3

    async def test_upload_with_name_and_project(self, service: TestService):
        response = await service.upload_test_set(SAMPLE_CSV, "cases.csv", name="Smoke", project="search")

        assert response.name == "Smoke"
        assert response.project == "search"

    async def test_missing_expected_persists_nothing(self, db: AsyncSession, service: TestService):
        content = b"id,input,expected\n1,q,a\n2,q,\n"

        with pytest.raises(ValidationError):
            await service.upload_test_set(content, "cases.csv")

        assert await count(db, TestSet) == 0
        assert await count(db, TestCase) == 0

    async def test_duplicate_ids_persist_nothing(self, db: AsyncSession, service: TestService):
        content = b"id,input,expected\n1,q,a\n1,q2,b\n"

        with pytest.raises(ResourceConflictError):
            await service.upload_test_set(content, "cases.csv")

        assert await count(db, TestSet) == 0

    async def test_unsupported_extension(self, service: TestService):
        with pytest.raises(UnsupportedFormatError):
            await service.upload_test_set(SAMPLE_CSV, "cases.json")

    async def test_extension_check_ignores_case(self, service: TestService, monkeypatch):
        monkeypatch.setattr(settings, "ALLOWED_EXTENSIONS", Settings(ALLOWED_EXTENSIONS="CSV,.XLSX").ALLOWED_EXTENSIONS)

        uploaded = await service.upload_test_set(SAMPLE_CSV, "Cases.CSV")

        assert uploaded.test_case_count == 3

    async def test_oversized_upload(self, service: TestService, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 10)

        with pytest.raises(ValidationError):
            await service.upload_test_set(SAMPLE_CSV, "cases.csv")


class TestQueries:
    """조회 테스트"""

    async def test_get_test_set_detail(self, service: TestService):
        uploaded = await service.upload_test_set(SAMPLE_CSV, "cases.csv")

        detail = await service.get_test_set(uploaded.test_set_id)

        assert detail["id"] == uploaded.test_set_id
        assert detail["test_case_count"] == 3
        assert [case["case_id"] for case in detail["cases"]] == ["1", "2", "3"]
        assert detail["cases"][0]["additional_context"] == {"topic": "math"}

    async def test_list_runs_for_unknown_set(self, service: TestService):
        with pytest.raises(ResourceNotFoundError):
            await service.list_runs_for_set("missing")

    async def test_run_and_list_runs(self, service: TestService):
        uploaded = await service.upload_test_set(SAMPLE_CSV, "cases.csv")

        summary = await service.run_test_set(uploaded.test_set_id)
        runs = await service.list_runs_for_set(uploaded.test_set_id)

        assert [run.id for run in runs] == [summary.test_run_id]
        assert (await service.get_run(summary.test_run_id)).status == "completed"

    async def test_run_requires_answerer_and_scorer(self, db: AsyncSession, service: TestService):
        uploaded = await service.upload_test_set(SAMPLE_CSV, "cases.csv")
        read_only = TestService(db, run_guard=RunGuard())

        assert len(await read_only.list_test_sets()) == 1
        with pytest.raises(ConfigurationError):
            await read_only.run_test_set(uploaded.test_set_id)


class TestDownload:
    """결과 내보내기 테스트"""

    async def _completed_run(self, service: TestService, answerer: FakeAnswerer) -> str:
        answerer.answers = {"2": "7"}
        uploaded = await service.upload_test_set(SAMPLE_CSV, "cases.csv")
        summary = await service.run_test_set(uploaded.test_set_id)
        return summary.test_run_id

    async def test_download_csv(self, service: TestService, answerer: FakeAnswerer):
        run_id = await self._completed_run(service, answerer)

        content, content_type, filename = await service.download_run_rows(run_id, "csv")

        assert content_type == "text/csv; charset=utf-8"
        assert filename == f"test-run-{run_id}-results.csv"

        lines = content.decode("utf-8").splitlines()
        assert lines[0] == "id,input,expected,topic,actual,score,reasoning"
        assert lines[1].startswith("1,2+2?,4,math,4,1.0,")
        assert lines[2].startswith("2,3+3?,6,math,7,0.0,")

    @pytest.mark.parametrize("format", ["xlsx", None, "pdf"])
    async def test_download_spreadsheet(self, service: TestService, answerer: FakeAnswerer, format):
        run_id = await self._completed_run(service, answerer)

        content, content_type, filename = await service.download_run_rows(run_id, format)

        assert content_type == XLSX_MIME
        assert filename == f"test-run-{run_id}-results.xlsx"

        workbook = load_workbook(io.BytesIO(content))
        assert workbook.sheetnames == ["Results"]
        header = next(workbook["Results"].iter_rows(values_only=True))
        assert header == ("id", "input", "expected", "topic", "actual", "score", "reasoning")

    async def test_download_unknown_run(self, service: TestService):
        with pytest.raises(ResourceNotFoundError):
            await service.download_run_rows("missing", "csv")
