"""
🏗️ Service Layer
================

Services sit between the Flask routes and the scheduler runtime. They never
raise into the routes: every call returns a ``ServiceResult`` whose
``error_code`` the routes map onto an HTTP status.
"""

import logging
from abc import ABC
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ServiceResult:
    """Outcome of a service call."""
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error_code: Optional[str] = None


class BaseService(ABC):
    """Shared logger, readiness flag and result helpers."""

    def __init__(self, name: str, runtime: Any):
        self.name = name
        self.runtime = runtime
        self.logger = logging.getLogger(f"service.{name}")
        self._initialized = False

    def initialize(self) -> ServiceResult:
        self._initialized = True
        self.logger.info(f"🔧 {self.name} service initialized")
        return ServiceResult(success=True, message=f"{self.name} service ready")

    def health_check(self) -> ServiceResult:
        if not self._initialized:
            return ServiceResult(
                success=False,
                message=f"{self.name} service not initialized",
                error_code="NOT_INITIALIZED",
            )
        return ServiceResult(success=True, data={"status": "healthy", "service": self.name})

    def _handle_error(self, error: Exception, operation: str) -> ServiceResult:
        """Unexpected failure: log with traceback and report ``OPERATION_FAILED``."""
        self.logger.error(f"{self.name}.{operation} failed: {error}", exc_info=True)
        return ServiceResult(
            success=False,
            message=f"Error in {self.name}.{operation}: {error}",
            error_code="OPERATION_FAILED",
        )

    def _success_result(self, data: Any = None, message: Optional[str] = None) -> ServiceResult:
        return ServiceResult(success=True, data=data, message=message)

    def _error_result(self, message: str, error_code: str = "ERROR", data: Any = None) -> ServiceResult:
        return ServiceResult(success=False, data=data, message=message, error_code=error_code)
