# testbench/backend/testbench/core/config.py
"""
애플리케이션 설정 관리 모듈

환경 변수를 읽어와 Pydantic 모델로 검증하고,
애플리케이션 전체에서 사용할 설정값을 제공합니다.
"""

from typing import List, Optional, Union
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    애플리케이션 설정 클래스

    환경 변수를 자동으로 읽어와 타입 검증을 수행합니다.
    .env 파일을 지원하며, 환경 변수가 우선순위를 가집니다.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # 애플리케이션 기본 설정
    APP_NAME: str = Field(default="TestBench", description="애플리케이션 이름")
    APP_VERSION: str = Field(default="1.0.0", description="애플리케이션 버전")
    DEBUG: bool = Field(default=False, description="디버그 모드 활성화 여부")
    LOG_LEVEL: str = Field(default="INFO", description="로깅 레벨")
    LOG_FILE: Optional[str] = Field(default=None, description="JSON 로그 파일 경로 (없으면 콘솔만)")

    # API 서버 설정
    API_HOST: str = Field(default="0.0.0.0", description="API 서버 호스트")
    API_PORT: int = Field(default=8000, description="API 서버 포트")
    API_PREFIX: str = Field(default="/api/v1", description="API 경로 접두사")

    # CORS 설정
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="허용된 CORS 오리진 목록"
    )

    # 데이터베이스 설정
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./testbench.db",
        description="데이터베이스 연결 URL"
    )
    DATABASE_ECHO: bool = Field(default=False, description="SQL 쿼리 로깅 여부")

    # 파일 업로드 설정
    MAX_UPLOAD_SIZE: int = Field(
        default=20971520,  # 20MB
        description="최대 업로드 파일 크기 (바이트)"
    )
    ALLOWED_EXTENSIONS: List[str] = Field(
        default=["csv", "xlsx", "xls"],
        description="허용된 파일 확장자 목록"
    )

    # 목록 조회 설정
    DEFAULT_LIST_LIMIT: int = Field(default=200, description="기본 목록 조회 개수")
    MAX_LIST_LIMIT: int = Field(default=500, description="최대 목록 조회 개수")

    # Answerer (평가 대상 챗봇) 설정
    ANSWERER_URL: str = Field(
        default="http://localhost:8080/chat",
        description="평가 대상 응답 서비스 엔드포인트"
    )
    ANSWERER_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        description="응답 서비스 HTTP 요청 제한 시간 (초)"
    )

    # 케이스 단위 실행 제한 시간 (Answerer + Scorer 합산)
    CASE_TIMEOUT_SECONDS: float = Field(
        default=120.0,
        gt=0,
        description="테스트 케이스별 외부 호출 제한 시간 (초)"
    )

    # Scorer 설정
    SCORER_BACKEND: str = Field(
        default="exact",
        description="채점 방식 (exact, llm)"
    )
    OPENAI_API_KEY: Optional[str] = Field(default=None, description="OpenAI API 키")
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="채점에 사용할 OpenAI 모델")
    SCORER_TEMPERATURE: float = Field(default=0.0, description="채점 LLM temperature 값")

    @field_validator("CORS_ORIGINS", "ALLOWED_EXTENSIONS", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: Union[str, List[str]]) -> List[str]:
        """
        콤마로 구분된 문자열을 리스트로 파싱

        환경 변수에서 콤마로 구분된 문자열로 전달되는 경우를 처리합니다.
        """
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("ALLOWED_EXTENSIONS")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        """확장자는 소문자, 점 없이 비교"""
        return [item.strip().lstrip(".").lower() for item in v if item.strip()]

    @field_validator("SCORER_BACKEND")
    @classmethod
    def check_scorer_backend(cls, v: str) -> str:
        """채점 방식 검증"""
        v = v.lower()
        if v not in ("exact", "llm"):
            raise ValueError(f"지원하지 않는 채점 방식: {v}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    설정 인스턴스를 반환하는 함수

    @lru_cache 데코레이터를 사용하여 설정 객체를 캐싱합니다.
    애플리케이션 생명주기 동안 동일한 설정 인스턴스를 재사용합니다.
    """
    return Settings()


# 전역 설정 인스턴스
settings = get_settings()
