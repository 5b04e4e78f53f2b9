"""
Uniform response envelope: {"success": bool, "message": str, "data": any}
"""

from typing import Any, Optional


def ok(data: Any = None, message: str = "OK", warning: Optional[str] = None) -> dict:
    body = {"success": True, "message": message, "data": data}
    if warning:
        body["warning"] = warning
    return body


def fail(message: str, data: Any = None) -> dict:
    return {"success": False, "message": message, "data": data}


def as_list(value: Any) -> list:
    """
    Coerces an expected-array field to a list.

    Legacy rows and upstream payloads sometimes carry null, an object or
    nothing at all where an array belongs; those all read as empty.
    """
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return []
