"""
API middleware: error responses shared by every route.
"""
from src.api.middleware.error_handler import (
    AppException,
    error_response,
    register_exception_handlers,
)

__all__ = [
    "AppException",
    "error_response",
    "register_exception_handlers",
]
