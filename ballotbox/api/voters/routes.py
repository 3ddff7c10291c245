from flask import Blueprint, request
from flasgger import swag_from
from flask_jwt_extended import jwt_required

from ...schemas.roster import AddVotersSchema, AddVotersResultSchema, RosterEntryReadSchema
from ...services import roster as roster_service
from ...utils.identity import current_user_id
from ...utils.validation import load_or_abort

voters_bp = Blueprint("voters", __name__)

add_voters_schema = AddVotersSchema()
add_voters_result_schema = AddVotersResultSchema()
roster_entry_many_schema = RosterEntryReadSchema(many=True)


@voters_bp.get("/<ballot_id>/voters")
@jwt_required()
@swag_from({
    "tags": ["Voters"],
    "summary": "List the voter roster of a ballot (creator only)",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "OK"}, 403: {"description": "Forbidden"}, 404: {"description": "Not found"}}
})
def list_voters(ballot_id):
    entries = roster_service.list_voters(ballot_id, current_user_id())
    return {"count": len(entries), "voters": roster_entry_many_schema.dump(entries)}, 200


@voters_bp.post("/<ballot_id>/voters")
@jwt_required()
@swag_from({
    "tags": ["Voters"],
    "summary": "Add voters by email; invalid or duplicate addresses are skipped",
    "description": (
        "The whole batch is rejected with CAPACITY_EXCEEDED when the new addresses "
        "would push the roster past max_voters. Not allowed on completed ballots."
    ),
    "security": [{"BearerAuth": []}],
    "responses": {
        200: {"description": "Per-address outcome"},
        400: {"description": "Validation error"},
        403: {"description": "Forbidden"},
        409: {"description": "Capacity exceeded / invalid state"},
    }
})
def add_voters(ballot_id):
    data = load_or_abort(add_voters_schema, request.get_json(silent=True) or {})
    outcome = roster_service.add_voters(
        ballot_id,
        current_user_id(),
        data["emails"],
        send_invitations=data["send_invitations"],
    )
    return add_voters_result_schema.dump(outcome), 200


@voters_bp.delete("/<ballot_id>/voters/<entry_id>")
@jwt_required()
@swag_from({
    "tags": ["Voters"],
    "summary": "Remove a voter who has not voted from a draft ballot",
    "security": [{"BearerAuth": []}],
    "responses": {
        200: {"description": "Removed"},
        403: {"description": "Forbidden"},
        404: {"description": "Voter not found"},
        409: {"description": "Ballot not in draft / voter already voted"},
    }
})
def remove_voter(ballot_id, entry_id):
    roster_service.remove_voter(ballot_id, current_user_id(), entry_id)
    return {"message": "Voter removed"}, 200
