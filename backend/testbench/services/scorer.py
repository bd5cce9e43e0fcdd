# testbench/backend/testbench/services/scorer.py
"""
Scorer 모듈

기대 출력과 생성된 답변을 비교하여 0 ~ 1 사이의 점수와 채점 근거를 반환합니다.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from testbench.core.config import Settings
from testbench.schemas.scoring import ScoreResponse
from testbench.utils.exceptions import ConfigurationError, ScorerError
from testbench.utils.logger import logger


class BaseScorer(ABC):
    """
    Scorer 추상 클래스

    모든 Scorer가 구현해야 할 인터페이스를 정의합니다.
    """

    @abstractmethod
    async def score(self, input: str, expected: str, actual: str) -> ScoreResponse:
        """
        답변 채점

        Args:
            input: 테스트 입력
            expected: 기대 출력
            actual: 생성된 답변

        Returns:
            ScoreResponse: 점수와 채점 근거
        """
        pass


class ExactMatchScorer(BaseScorer):
    """공백 / 대소문자를 정규화한 완전 일치 채점"""

    async def score(self, input: str, expected: str, actual: str) -> ScoreResponse:
        if _normalize(expected) == _normalize(actual):
            return ScoreResponse(score=1.0, reasoning="기대 출력과 일치합니다.")
        return ScoreResponse(score=0.0, reasoning="기대 출력과 일치하지 않습니다.")


JUDGE_PROMPT = """You are grading the answer of an assistant against a reference answer.

Question:
{input}

Reference answer:
{expected}

Assistant answer:
{actual}

Rate how well the assistant answer matches the reference answer in meaning and
correctness, from 0.0 (wrong or unrelated) to 1.0 (fully correct).
Respond with JSON only, in the form:
{{"score": <number between 0 and 1>, "reasoning": "<one or two sentences>"}}"""


class LLMJudgeScorer(BaseScorer):
    """
    LLM 채점기

    OpenAI 채팅 모델에 채점 프롬프트를 보내고 JSON 응답을 파싱합니다.
    """

    def __init__(self, llm: Any, model_name: Optional[str] = None):
        self.llm = llm
        self.model_name = model_name
        self.prompt = ChatPromptTemplate.from_template(JUDGE_PROMPT)
        self.chain = self.prompt | self.llm

    async def score(self, input: str, expected: str, actual: str) -> ScoreResponse:
        try:
            message = await self.chain.ainvoke({
                "input": input,
                "expected": expected,
                "actual": actual,
            })
        except Exception as e:
            raise ScorerError(
                f"LLM 채점 호출 실패: {str(e)}",
                model_name=self.model_name
            ) from e

        content = getattr(message, "content", message)
        return self._parse_verdict(str(content))

    def _parse_verdict(self, content: str) -> ScoreResponse:
        """모델 응답에서 JSON 판정 추출"""
        match = re.search(r"\{.*\}", content, re.DOTALL)
        if not match:
            raise ScorerError(
                f"채점 응답에서 JSON을 찾을 수 없습니다: {content[:200]}",
                model_name=self.model_name
            )

        try:
            verdict = json.loads(match.group(0))
            score = float(verdict["score"])
        except (ValueError, KeyError, TypeError) as e:
            raise ScorerError(
                f"채점 응답 형식 오류: {content[:200]}",
                model_name=self.model_name
            ) from e

        # 0 ~ 1 범위로 보정
        score = min(1.0, max(0.0, score))

        return ScoreResponse(score=score, reasoning=str(verdict.get("reasoning", "")))


def build_scorer(config: Settings) -> BaseScorer:
    """
    설정에 따른 Scorer 생성

    Raises:
        ConfigurationError: LLM 채점에 필요한 API 키가 없는 경우
    """
    if config.SCORER_BACKEND == "llm":
        if not config.OPENAI_API_KEY:
            raise ConfigurationError(
                "LLM 채점을 사용하려면 OPENAI_API_KEY가 필요합니다.",
                config_key="OPENAI_API_KEY"
            )

        llm = ChatOpenAI(
            model=config.OPENAI_MODEL,
            temperature=config.SCORER_TEMPERATURE,
            api_key=config.OPENAI_API_KEY
        )
        logger.info(f"LLM 채점기 사용: {config.OPENAI_MODEL}")
        return LLMJudgeScorer(llm, model_name=config.OPENAI_MODEL)

    return ExactMatchScorer()


def _normalize(text: str) -> str:
    return " ".join(str(text).split()).casefold()
