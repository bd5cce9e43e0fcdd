# testbench/backend/testbench/models/result.py
"""
실행 결과 모델
"""

from sqlalchemy import Column, String, Text, Float, UniqueConstraint

from testbench.models.base import Base, TimestampMixin, generate_id


class Result(Base, TimestampMixin):
    """실행 내 테스트 케이스 하나의 답변 / 점수 / 채점 근거"""

    __tablename__ = "results"
    __table_args__ = (
        UniqueConstraint("test_run_id", "test_case_id", name="uq_results_run_case"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    test_run_id = Column(String(36), nullable=False, index=True)
    test_case_id = Column(String(36), nullable=False, index=True)
    actual = Column(Text, nullable=False, default="")
    score = Column(Float, nullable=False, default=0.0)
    reasoning = Column(Text, nullable=False, default="")

    def __repr__(self):
        return f"<Result(id={self.id}, test_run_id={self.test_run_id}, score={self.score})>"
