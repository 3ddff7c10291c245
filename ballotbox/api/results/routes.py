from flask import Blueprint
from flasgger import swag_from
from flask_jwt_extended import jwt_required

from ...schemas.results import BallotResultsSchema, BallotSnapshotSchema
from ...services import tabulation
from ...services.access import get_ballot, get_owned_ballot, assert_can_view_results
from ...utils.audit import safe_audit
from ...utils.identity import current_user_id

results_bp = Blueprint("results", __name__)

results_schema = BallotResultsSchema()
snapshot_schema = BallotSnapshotSchema()


@results_bp.get("/<ballot_id>/results")
@jwt_required()
@swag_from({
    "tags": ["Results"],
    "summary": "Get ballot results recounted from the stored votes",
    "description": (
        "Access rules:\n"
        "- Creator and registered voters: any time.\n"
        "- Any authenticated caller: once the ballot is completed.\n"
        "Returns per-question option counts, write-in totals and participation."
    ),
    "security": [{"BearerAuth": []}],
    "responses": {
        200: {"description": "Results"},
        403: {"description": "Forbidden"},
        404: {"description": "Ballot not found"},
    }
})
def ballot_results(ballot_id):
    user_id = current_user_id()
    ballot = get_ballot(ballot_id)
    assert_can_view_results(ballot, user_id)

    results = tabulation.tabulate(ballot)
    body = results_schema.dump(results)

    safe_audit(
        action="RESULTS_VIEWED",
        entity_type="BALLOT",
        entity_id=results["ballot_id"],
        details={"status": results["status"], "voted_count": results["voted_count"]},
        actor_id=user_id,
    )
    return {"results": body}, 200


@results_bp.get("/<ballot_id>/results/snapshot")
@jwt_required()
@swag_from({
    "tags": ["Results"],
    "summary": "Get the result snapshot stored when the ballot completed",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "Snapshot"}, 403: {"description": "Forbidden"}, 404: {"description": "Not found"}}
})
def ballot_snapshot(ballot_id):
    ballot = get_ballot(ballot_id)
    assert_can_view_results(ballot, current_user_id())
    return {"snapshot": snapshot_schema.dump(tabulation.get_snapshot(ballot.id))}, 200


@results_bp.post("/<ballot_id>/results/snapshot")
@jwt_required()
@swag_from({
    "tags": ["Results"],
    "summary": "Recount a completed ballot and replace its stored snapshot (creator only)",
    "security": [{"BearerAuth": []}],
    "responses": {
        200: {"description": "Snapshot rewritten"},
        403: {"description": "Forbidden"},
        409: {"description": "Ballot not completed"},
    }
})
def recompute_snapshot(ballot_id):
    ballot = get_owned_ballot(ballot_id, current_user_id())
    rows = tabulation.persist_snapshot(ballot.id)
    return {
        "message": "Result snapshot stored",
        "rows": rows,
        "snapshot": snapshot_schema.dump(tabulation.get_snapshot(ballot_id)),
    }, 200
