# testbench/backend/testbench/models/base.py
"""
베이스 모델 클래스
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_id() -> str:
    """문자열 UUID 식별자 생성"""
    return str(uuid.uuid4())


class TimestampMixin:
    """타임스탬프 믹스인"""
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
