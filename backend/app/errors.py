"""Error types and the JSON error envelope shared by all endpoints."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db

_DEFAULT_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    429: "TOO_MANY_REQUESTS",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}


class ApiError(Exception):
    """Base class for errors that are rendered as structured responses."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or _DEFAULT_CODES.get(int(self.status_code), "UNKNOWN_ERROR")

    def to_dict(self) -> dict[str, Any]:
        return error_payload(int(self.status_code), self.message, self.error_code)


class ValidationError(ApiError):
    status_code = HTTPStatus.BAD_REQUEST


class AuthenticationError(ApiError):
    status_code = HTTPStatus.UNAUTHORIZED


class ForbiddenError(ApiError):
    status_code = HTTPStatus.FORBIDDEN


class NotFoundError(ApiError):
    status_code = HTTPStatus.NOT_FOUND


class ConflictError(ApiError):
    status_code = HTTPStatus.CONFLICT


class UnprocessableError(ApiError):
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY


class UpstreamError(ApiError):
    status_code = HTTPStatus.BAD_GATEWAY


def error_payload(status_code: int, message: str, error_code: str | None = None) -> dict[str, Any]:
    """Return the error envelope for the given status code."""

    return {
        "status": "fail" if 400 <= status_code < 500 else "error",
        "error": message,
        "errorCode": error_code or _DEFAULT_CODES.get(status_code, "UNKNOWN_ERROR"),
    }


def success(data: Any, status_code: int = HTTPStatus.OK) -> tuple[object, int]:
    """Wrap ``data`` in the success envelope."""

    return jsonify({"status": "success", "data": data}), status_code


def register_error_handlers(app: Flask) -> None:
    """Render every error raised by a view with the shared envelope."""

    @app.errorhandler(ApiError)
    def _handle_api_error(exc: ApiError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        status_code = exc.code or HTTPStatus.INTERNAL_SERVER_ERROR
        response = jsonify(error_payload(status_code, exc.description or exc.name))
        response.status_code = status_code
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error while processing request")
        db.session.rollback()
        return (
            jsonify(error_payload(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error")),
            HTTPStatus.INTERNAL_SERVER_ERROR,
        )
