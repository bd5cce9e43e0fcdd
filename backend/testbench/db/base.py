# testbench/backend/testbench/db/base.py
"""
데이터베이스 베이스 설정
"""

# 모든 모델을 import하여 Base.metadata에 등록
from testbench.models.base import Base
from testbench.models.test_set import TestSet
from testbench.models.test_case import TestCase
from testbench.models.test_run import TestRun
from testbench.models.result import Result

__all__ = ["Base", "TestSet", "TestCase", "TestRun", "Result"]
