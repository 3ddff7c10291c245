from flask import jsonify, g, current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException


class BallotError(Exception):
    """Base class for ballot domain errors.

    Each subclass carries the error ``code`` rendered to clients and the HTTP
    ``status`` it maps to. Services raise these before any mutation, or after
    rolling the session back.
    """

    code = "BALLOT_ERROR"
    status = 400

    def __init__(self, message: str | None = None, details=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details


class NotFound(BallotError):
    code = "NOT_FOUND"
    status = 404


class Forbidden(BallotError):
    code = "FORBIDDEN"
    status = 403


class InvalidState(BallotError):
    code = "INVALID_STATE"
    status = 409


class CapacityExceeded(BallotError):
    code = "CAPACITY_EXCEEDED"
    status = 409


class AlreadyVoted(BallotError):
    code = "ALREADY_VOTED"
    status = 409


class InvalidAnswer(BallotError):
    code = "INVALID_ANSWER"
    status = 400


class InvalidQuestion(InvalidAnswer):
    code = "INVALID_QUESTION"


class InvalidOption(InvalidAnswer):
    code = "INVALID_OPTION"


class InvalidBallot(BallotError):
    """Ballot definition or metadata rejected by a rule the request schema cannot see."""

    code = "VALIDATION_ERROR"
    status = 400


class Conflict(BallotError):
    code = "CONFLICT"
    status = 409


class StoreUnavailable(BallotError):
    code = "STORE_UNAVAILABLE"
    status = 503


def _payload(code: str, message: str, details=None, status=400):
    return (
        jsonify({
            "success": False,
            "error": {
                "code": code,
                "message": message,
                "details": details or None,
            },
            "request_id": getattr(g, "request_id", None),
        }),
        status,
    )

def register_error_handlers(app):
    @app.errorhandler(BallotError)
    def handle_ballot_error(e: BallotError):
        return _payload(code=e.code, message=e.message, details=e.details, status=e.status)

    # Generic HTTP errors (404, 403, 401, etc.)
    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        desc = e.description

        # If we pass structured error info via abort(description=dict)
        if isinstance(desc, dict):
            code = desc.get("code") or e.name.replace(" ", "_").upper()
            message = desc.get("message") or e.name
            details = desc.get("errors") or desc.get("details")
            return _payload(code=code, message=message, details=details, status=e.code or 400)

        return _payload(
            code=e.name.replace(" ", "_").upper(),
            message=desc or e.name,
            details=None,
            status=e.code or 400
        )

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(_):
        current_app.logger.exception("Unhandled store error request_id=%s", getattr(g, "request_id", None))
        return _payload("STORE_UNAVAILABLE", "The data store is temporarily unavailable", status=503)

    @app.errorhandler(Exception)
    def handle_unexpected(_):
        # Don't leak internals
        current_app.logger.exception("Unhandled exception request_id=%s", getattr(g, "request_id", None))
        return _payload("INTERNAL_SERVER_ERROR", "An unexpected error occurred", status=500)
