from flask import Blueprint, request
from flasgger import swag_from
from flask_jwt_extended import jwt_required

from ...schemas.vote import VoteCastSchema, VoteReceiptSchema, VoteStatusSchema
from ...services import voting as voting_service
from ...utils.identity import current_user_id
from ...utils.validation import load_or_abort

voting_bp = Blueprint("voting", __name__)

vote_cast_schema = VoteCastSchema()
vote_receipt_schema = VoteReceiptSchema()
vote_status_schema = VoteStatusSchema()


@voting_bp.post("/<ballot_id>/vote")
@jwt_required()
@swag_from({
    "tags": ["Voting"],
    "summary": "Cast every answer of a ballot in one submission",
    "security": [{"BearerAuth": []}],
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "answers": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "question_id": {"type": "string", "example": "uuid"},
                            "option_id": {"type": "string", "example": "uuid"},
                            "write_in": {"type": "string", "example": "Dave"},
                        },
                        "required": ["question_id"],
                    },
                },
            },
            "required": ["answers"],
        },
    }],
    "responses": {
        201: {"description": "Vote recorded"},
        400: {"description": "Invalid answer / question / option"},
        403: {"description": "Not registered for this ballot"},
        404: {"description": "Ballot not found"},
        409: {"description": "Already voted / ballot not live"},
    },
})
def cast_vote(ballot_id):
    data = load_or_abort(vote_cast_schema, request.get_json(silent=True) or {})
    receipt = voting_service.cast_vote(ballot_id, current_user_id(), data["answers"])
    return vote_receipt_schema.dump(receipt), 201


@voting_bp.get("/<ballot_id>/vote/status")
@jwt_required()
@swag_from({
    "tags": ["Voting"],
    "summary": "Whether the caller is registered and has voted",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "OK"}, 404: {"description": "Ballot not found"}}
})
def vote_status(ballot_id):
    status = voting_service.vote_status(ballot_id, current_user_id())
    return vote_status_schema.dump(status), 200
