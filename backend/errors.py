# errors.py — Error taxonomy shared by the REST and RPC transports
from typing import Any, Dict, Optional

from fastapi import HTTPException

# ============================================================
# ERROR CODE CATALOGUE
# code → HTTP status + JSON-RPC error code
# ============================================================

ERROR_CATALOGUE = {
    "BAD_REQUEST": {"http_status": 400, "rpc_code": -32600},
    "UNAUTHORIZED": {"http_status": 401, "rpc_code": -32001},
    "NOT_FOUND": {"http_status": 404, "rpc_code": -32004},
    "INTERNAL_SERVER_ERROR": {"http_status": 500, "rpc_code": -32603},
}


class ApiError(HTTPException):
    """HTTPException tagged with a catalogue code"""
    code = "INTERNAL_SERVER_ERROR"
    default_message = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        issues: Optional[list] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.issues = issues
        super().__init__(
            status_code=ERROR_CATALOGUE[self.code]["http_status"],
            detail=self.message,
            headers=headers,
        )

    @property
    def rpc_code(self) -> int:
        return ERROR_CATALOGUE[self.code]["rpc_code"]

    def to_rest(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        body = {"detail": self.message, "code": self.code, "request_id": request_id}
        if self.issues:
            body["issues"] = self.issues
        return body

    def to_rpc(self, path: str) -> Dict[str, Any]:
        data = {"code": self.code, "httpStatus": self.status_code, "path": path}
        if self.issues:
            data["issues"] = self.issues
        return {"error": {"message": self.message, "code": self.rpc_code, "data": data}}


class BadRequest(ApiError):
    code = "BAD_REQUEST"
    default_message = "Bad request"


class Unauthorized(ApiError):
    code = "UNAUTHORIZED"
    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class NotFound(ApiError):
    code = "NOT_FOUND"
    default_message = "Not found"


class InternalServerError(ApiError):
    code = "INTERNAL_SERVER_ERROR"
    default_message = "Internal server error"


def clean_validation_errors(errors) -> list:
    """Reduce pydantic/FastAPI error dicts to JSON-safe type/loc/msg entries"""
    cleaned = []
    for err in errors:
        cleaned.append({
            "type": str(err.get("type", "unknown")),
            "loc": [str(part) for part in err.get("loc", [])],
            "msg": str(err.get("msg", "")),
        })
    return cleaned
