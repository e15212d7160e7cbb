"""
Railway-Oriented Programming (ROP) support for the bundle extractor.

Explicit, composable error handling — adapters return Result instead of raising:

    from railway import Result, ErrorCode

    def require_certificate(der: bytes) -> Result[bytes]:
        if not der:
            return Result.failure(ErrorCode.INVALID_CERTIFICATE, "empty certificate")
        return Result.success(der)
"""

from railway.assertions import ResultAssertions
from railway.execution import ExecutionContext, LoggingExecutionContext, NoOpExecutionContext
from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultAssertions",
]
