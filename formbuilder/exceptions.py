"""
API error type rendered as {success: false, message, errors?}
"""
from typing import List, Optional

from fastapi import HTTPException


class APIError(HTTPException):
    """HTTP error carrying an itemized error list and optional debug detail"""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Optional[List[str]] = None,
        debug: Optional[str] = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.errors = errors
        self.debug = debug


def bad_request(message: str, errors: Optional[List[str]] = None) -> APIError:
    return APIError(400, message, errors=errors)


def not_found(resource: str) -> APIError:
    return APIError(404, f"{resource} not found")
