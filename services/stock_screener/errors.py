"""
Errores de aplicación expuestos por la API

Cada error lleva status HTTP y código; main.py los serializa como
{"error": {"code": ..., "message": ...}}.
"""

from typing import Any, Dict


class AppError(Exception):
    """Error base con status HTTP y código estable"""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, status_code: int = None, code: str = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class BadRequestError(AppError):
    status_code = 400
    code = "BAD_REQUEST"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class InternalServerError(AppError):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
