# testbench/backend/testbench/models/test_case.py
"""
테스트 케이스 모델
"""

from sqlalchemy import Column, String, Text, JSON, Integer, UniqueConstraint

from testbench.models.base import Base, TimestampMixin, generate_id


class TestCase(Base, TimestampMixin):
    """입력 / 기대 출력 쌍과 추가 컨텍스트 컬럼"""

    __tablename__ = "test_cases"
    __table_args__ = (
        UniqueConstraint("test_set_id", "case_id", name="uq_test_cases_set_case"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    test_set_id = Column(String(36), nullable=False, index=True)
    case_id = Column(String(255), nullable=False)  # 업로드 파일의 id 컬럼
    input = Column(Text, nullable=False)
    expected = Column(Text, nullable=False)
    additional_context = Column(JSON, default=dict)

    # 업로드 파일 내 행 순서 (실행 / 내보내기 정렬 기준)
    position = Column(Integer, nullable=False, default=0)

    def to_row(self) -> dict:
        """내보내기 / Answerer 입력용 행 뷰"""
        extras = self.additional_context if isinstance(self.additional_context, dict) else {}
        return {
            "id": str(self.case_id),
            "input": str(self.input),
            "expected": str(self.expected),
            **extras,
        }

    def __repr__(self):
        return f"<TestCase(id={self.id}, test_set_id={self.test_set_id}, case_id='{self.case_id}')>"
