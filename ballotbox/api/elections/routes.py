from flask import Blueprint
from flasgger import swag_from
from flask_jwt_extended import jwt_required

from ...schemas.dashboard import ElectionSummarySchema, ElectionListItemSchema
from ...services import dashboard
from ...utils.identity import current_user_id

elections_bp = Blueprint("elections", __name__)

summary_schema = ElectionSummarySchema()
list_item_many_schema = ElectionListItemSchema(many=True)


@elections_bp.get("/summary")
@jwt_required()
@swag_from({
    "tags": ["Elections"],
    "summary": "Counts of the caller's ballots by status, with voter and vote totals",
    "description": (
        "Status counts cover ballots the caller created or is registered on.\n"
        "total_voters and total_votes cover ballots the caller created.\n"
        "ballots_voted counts ballots on which the caller has voted."
    ),
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "OK"}, 401: {"description": "Unauthorized"}}
})
def election_summary():
    return {"summary": summary_schema.dump(dashboard.summary(current_user_id()))}, 200


@elections_bp.get("/recent")
@jwt_required()
@swag_from({
    "tags": ["Elections"],
    "summary": "Five most recently created ballots visible to the caller",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "OK"}, 401: {"description": "Unauthorized"}}
})
def recent_elections():
    items = dashboard.recent_ballots(current_user_id())
    return {"elections": list_item_many_schema.dump(items)}, 200


@elections_bp.get("/upcoming")
@jwt_required()
@swag_from({
    "tags": ["Elections"],
    "summary": "Next five ballots visible to the caller that have not started yet",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "OK"}, 401: {"description": "Unauthorized"}}
})
def upcoming_elections():
    items = dashboard.upcoming_ballots(current_user_id())
    return {"elections": list_item_many_schema.dump(items)}, 200
