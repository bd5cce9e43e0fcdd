# testbench/backend/testbench/schemas/scoring.py
"""
외부 협력자(Answerer, Scorer) 응답 스키마
"""

from pydantic import BaseModel


class AnswerResponse(BaseModel):
    """Answerer 응답"""
    answer: str


class ScoreResponse(BaseModel):
    """Scorer 응답"""
    score: float
    reasoning: str = ""
