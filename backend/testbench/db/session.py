# testbench/backend/testbench/db/session.py
"""
데이터베이스 세션 관리

SQLAlchemy 비동기 엔진 / 세션 팩토리를 만들고 요청 단위 세션을 제공합니다.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from testbench.core.config import settings
from testbench.utils.logger import logger


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    비동기 엔진 생성

    SQLite 인메모리 DB는 모든 세션이 같은 연결을 공유해야 하므로 StaticPool을,
    그 외에는 연결 풀 없이(NullPool) 사용합니다.
    """
    url = make_url(database_url)
    options: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}

    if url.get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        in_memory = url.database in (None, "", ":memory:")
        options["poolclass"] = StaticPool if in_memory else NullPool
    else:
        options["poolclass"] = NullPool

    return create_async_engine(url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """커밋 후에도 객체를 계속 사용할 수 있는 세션 팩토리"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    데이터베이스 세션 의존성

    요청당 하나의 세션을 열고, 정상 종료 시 커밋 / 예외 시 롤백합니다.

    Yields:
        AsyncSession: 데이터베이스 세션
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine = engine):
    """등록된 모든 모델의 테이블 생성"""
    from testbench.db.base import Base

    try:
        async with bind.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error(f"데이터베이스 초기화 중 오류: {str(e)}")
        raise

    logger.info(f"데이터베이스 초기화 완료: {bind.url.render_as_string(hide_password=True)}")
