"""
Standard response envelope shared by every API route.
"""
from __future__ import annotations

from typing import Any


def success_response(data: Any, code: int = 200, description: str = "Success") -> dict[str, Any]:
    return {
        "code": code,
        "success": True,
        "data": data,
        "description": description,
    }


def error_response(description: str, code: int = 400, data: Any = None) -> dict[str, Any]:
    return {
        "code": code,
        "success": False,
        "data": data,
        "description": description,
    }
