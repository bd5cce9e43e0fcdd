"""
Pydantic 스키마 정의

API 요청/응답 검증을 위한 스키마들을 정의합니다.
"""

from testbench.schemas.test_set import *
from testbench.schemas.test_run import *
from testbench.schemas.scoring import *
