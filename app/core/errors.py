from typing import Any

from fastapi import HTTPException


def api_error(status_code: int, message: str, code: str, **extra: Any) -> HTTPException:
    """HTTPException whose detail carries a machine-readable error code."""
    detail = {"error": message, "code": code}
    detail.update(extra)
    return HTTPException(status_code=status_code, detail=detail)
