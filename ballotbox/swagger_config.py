from .errors import (
    NotFound, Forbidden, InvalidState, CapacityExceeded, AlreadyVoted, InvalidAnswer,
    InvalidQuestion, InvalidOption, InvalidBallot, Conflict, StoreUnavailable,
)

DOMAIN_ERRORS = (
    InvalidBallot, InvalidAnswer, InvalidQuestion, InvalidOption, Forbidden, NotFound,
    InvalidState, CapacityExceeded, AlreadyVoted, Conflict, StoreUnavailable,
)

TAGS = [
    {"name": "Ballots", "description": "Create, edit and move ballots through draft -> live -> completed"},
    {"name": "Questions", "description": "Questions and options of a draft ballot"},
    {"name": "Voters", "description": "Roster management, bounded by the ballot's max_voters"},
    {"name": "Voting", "description": "Cast a full ballot once, check whether you have voted"},
    {"name": "Results", "description": "Live recounts and stored result snapshots"},
    {"name": "Elections", "description": "Per-user overview: status counts, recent and upcoming ballots"},
]


def _error_codes() -> list[str]:
    codes = [err.code for err in DOMAIN_ERRORS]
    # Emitted by the generic HTTP and fallback handlers
    codes += ["UNAUTHORIZED", "METHOD_NOT_ALLOWED", "INTERNAL_SERVER_ERROR"]
    return codes


def swagger_template(app=None):
    title = "Ballot Service API"
    version = "1.0.0"

    if app:
        title = app.config.get("SWAGGER_TITLE", title)
        version = app.config.get("SWAGGER_VERSION", version)

    status_lines = "\n".join(f"- `{err.code}`: HTTP {err.status}" for err in DOMAIN_ERRORS)

    return {
        "swagger": "2.0",
        "info": {
            "title": title,
            "version": version,
            "description": (
                "Ballots with ordered questions and options, a capacity-bounded voter roster, "
                "one atomic submission per voter and recountable results.\n\n"
                "Every failure uses the same envelope: "
                "`{success: false, error: {code, message, details}, request_id}`. "
                "Domain error codes:\n" + status_lines
            ),
        },
        "tags": TAGS,
        "securityDefinitions": {
            "BearerAuth": {
                "type": "apiKey",
                "name": "Authorization",
                "in": "header",
                "description": "JWT issued by the identity provider: Bearer <token>"
            }
        },
        "definitions": {
            "ErrorResponse": {
                "type": "object",
                "required": ["success", "error"],
                "properties": {
                    "success": {"type": "boolean", "example": False},
                    "error": {
                        "type": "object",
                        "required": ["code", "message"],
                        "properties": {
                            "code": {"type": "string", "enum": _error_codes(), "example": "CAPACITY_EXCEEDED"},
                            "message": {"type": "string", "example": "Cannot add voters: would exceed maximum voter limit"},
                            "details": {
                                "type": "object",
                                "description": "Field errors or capacity figures, depending on the code",
                                "example": {"max_voters": 2, "registered_voters": 2, "requested": 1},
                            }
                        }
                    },
                    "request_id": {"type": "string", "description": "Echoes the X-Request-Id header"}
                }
            }
        }
    }
