"""Auth0 Management API error body parsing.

Auth0 answers failed calls with a JSON body such as:

    {"statusCode": 404, "error": "Not Found", "message": "The user does not exist.", "errorCode": "inexistent_user"}

ErrorResponse extracts the human-readable message so domain errors carry the
directory's explanation instead of a raw HTTP dump.
"""

from __future__ import annotations

__all__ = ["ErrorResponse"]

import json

from pydantic import BaseModel, ConfigDict, ValidationError


class ErrorResponse(BaseModel):
    """Error payload returned by the Management API."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    status_code: int | None = None
    error: str = ""
    message: str = ""
    error_code: str = ""

    @classmethod
    def parse(cls, raw: str) -> ErrorResponse | None:
        """Parse an error body, returning None when it is not Auth0's format."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        try:
            return cls(
                status_code=data.get("statusCode"),
                error=data.get("error") or "",
                message=data.get("message") or "",
                error_code=data.get("errorCode") or "",
            )
        except ValidationError:
            return None

    @classmethod
    def error_message(cls, raw: str) -> str:
        """Best human-readable message for an error body.

        Falls back to the error title, then to the raw text.
        """
        parsed = cls.parse(raw)
        if parsed is None:
            return raw
        return parsed.message or parsed.error or raw
