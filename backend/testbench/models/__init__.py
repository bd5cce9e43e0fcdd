from testbench.models.test_set import TestSet
from testbench.models.test_case import TestCase
from testbench.models.test_run import TestRun, RunStatus
from testbench.models.result import Result

__all__ = ["TestSet", "TestCase", "TestRun", "RunStatus", "Result"]
