# testbench/backend/testbench/schemas/test_run.py
"""
테스트 실행 관련 스키마
"""

from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TestRunRead(BaseModel):
    """테스트 실행 조회 응답"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    test_set_id: str
    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None


class RunSummary(BaseModel):
    """테스트 실행 요약"""
    test_run_id: str
    test_set_id: str
    status: str
    total: int = Field(ge=0)
    success_count: int = Field(ge=0)
    failed_count: int = Field(ge=0)


class RunRowsResponse(BaseModel):
    """테스트 케이스와 결과를 합친 행 목록"""
    rows: List[Dict[str, Any]]
