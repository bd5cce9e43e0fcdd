# testbench/backend/testbench/services/answerer.py
"""
Answerer 클라이언트

평가 대상 응답 서비스(챗봇)에 테스트 입력 행을 전달하고 생성된 답변을 받아옵니다.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from testbench.core.config import Settings
from testbench.schemas.scoring import AnswerResponse
from testbench.utils.exceptions import AnswererError
from testbench.utils.logger import logger


class BaseAnswerer(ABC):
    """
    Answerer 추상 클래스

    모든 Answerer가 구현해야 할 인터페이스를 정의합니다.
    """

    @abstractmethod
    async def respond(self, row: Dict[str, Any]) -> AnswerResponse:
        """
        테스트 입력 행에 대한 답변 생성

        Args:
            row: id, input, expected와 추가 컨텍스트 컬럼을 담은 행

        Returns:
            AnswerResponse: 생성된 답변
        """
        pass


class HttpAnswerer(BaseAnswerer):
    """
    HTTP 엔드포인트 Answerer

    행 전체를 JSON으로 POST하고 {"answer": "..."} 형식의 응답을 기대합니다.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.transport = transport

    async def respond(self, row: Dict[str, Any]) -> AnswerResponse:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.endpoint, json=row)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AnswererError(
                f"응답 서비스 오류 응답: HTTP {e.response.status_code}",
                endpoint=self.endpoint,
                status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise AnswererError(
                f"응답 서비스 호출 실패: {type(e).__name__}: {str(e)}",
                endpoint=self.endpoint
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise AnswererError(
                "응답 서비스가 JSON이 아닌 응답을 반환했습니다.",
                endpoint=self.endpoint,
                status_code=response.status_code
            ) from e

        answer = payload.get("answer") if isinstance(payload, dict) else None
        if answer is None:
            raise AnswererError(
                "응답 서비스 응답에 answer 필드가 없습니다.",
                endpoint=self.endpoint,
                status_code=response.status_code
            )

        logger.debug(f"답변 수신: case={row.get('id')}, 길이={len(str(answer))}")
        return AnswerResponse(answer=str(answer))


def build_answerer(config: Settings) -> BaseAnswerer:
    """설정에 따른 Answerer 생성"""
    return HttpAnswerer(
        endpoint=config.ANSWERER_URL,
        timeout=config.ANSWERER_TIMEOUT_SECONDS
    )
