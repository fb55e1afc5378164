"""
Response Envelopes

Builders for the {success, data | error, metadata} envelope every search
endpoint returns.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .errors import ApiError


class RequestContext:
    """Request id and start time shared by everything rendered for one request."""

    def __init__(self, version: str, request_id: Optional[str] = None):
        self.version = version
        self.request_id = request_id or str(uuid.uuid4())
        self._start = time.perf_counter()

    def metadata(self) -> Dict[str, Any]:
        return {
            "requestId": self.request_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "processingTime": round((time.perf_counter() - self._start) * 1000, 2),
            "version": self.version,
        }


def success_response(context: RequestContext, data: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        content=jsonable_encoder({
            "success": True,
            "data": data,
            "metadata": context.metadata(),
        }),
        status_code=200,
    )


def error_response(context: RequestContext, error: ApiError, debug: bool = False) -> JSONResponse:
    """Render an error envelope; details are only included in debug mode."""
    body: Dict[str, Any] = {"code": error.code, "message": error.message}
    if error.field:
        body["field"] = error.field
    if debug and error.details:
        body["details"] = error.details
    return JSONResponse(
        content={"success": False, "error": body, "metadata": context.metadata()},
        status_code=error.status_code,
    )
