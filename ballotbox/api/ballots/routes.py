from flask import Blueprint, request
from flasgger import swag_from
from flask_jwt_extended import jwt_required

from ...schemas.ballot import (
    BallotCreateSchema,
    BallotUpdateSchema,
    BallotReadSchema,
    BallotSummarySchema,
    QuestionCreateSchema,
    QuestionReadSchema,
    ReorderSchema,
)
from ...schemas.results import BallotStatusSchema
from ...schemas.roster import AddVotersResultSchema
from ...services import ballots as ballot_service
from ...services import tabulation
from ...utils.identity import current_user_id
from ...utils.validation import load_or_abort

ballots_bp = Blueprint("ballots", __name__)

ballot_create_schema = BallotCreateSchema()
ballot_update_schema = BallotUpdateSchema()
ballot_read_schema = BallotReadSchema()
ballot_summary_many_schema = BallotSummarySchema(many=True)
question_create_schema = QuestionCreateSchema()
question_read_schema = QuestionReadSchema()
question_read_many_schema = QuestionReadSchema(many=True)
reorder_schema = ReorderSchema()
status_schema = BallotStatusSchema()
add_voters_result_schema = AddVotersResultSchema()


@ballots_bp.post("/")
@jwt_required()
@swag_from({
    "tags": ["Ballots"],
    "summary": "Create a ballot in draft with its questions, options and an optional voter roster",
    "security": [{"BearerAuth": []}],
    "responses": {
        201: {"description": "Created"},
        400: {"description": "Validation error"},
        401: {"description": "Unauthorized"},
        409: {"description": "Voter seed exceeds max_voters"},
    }
})
def create_ballot():
    payload = load_or_abort(ballot_create_schema, request.get_json(silent=True) or {})
    ballot, roster_outcome = ballot_service.create_ballot_with_roster(current_user_id(), **payload)
    body = {"ballot": ballot_read_schema.dump(ballot)}
    if roster_outcome is not None:
        body["roster"] = add_voters_result_schema.dump(roster_outcome)
    return body, 201


@ballots_bp.get("/")
@jwt_required()
@swag_from({
    "tags": ["Ballots"],
    "summary": "List ballots the caller created or is registered on",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "OK"}, 401: {"description": "Unauthorized"}}
})
def list_ballots():
    ballots = ballot_service.list_ballots(current_user_id())
    return {"ballots": ballot_summary_many_schema.dump(ballots)}, 200


@ballots_bp.get("/<ballot_id>")
@jwt_required()
@swag_from({
    "tags": ["Ballots"],
    "summary": "Get a ballot with its questions and options",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "OK"}, 403: {"description": "Forbidden"}, 404: {"description": "Not found"}}
})
def get_ballot(ballot_id):
    ballot = ballot_service.get_ballot_for_viewer(ballot_id, current_user_id())
    return {"ballot": ballot_read_schema.dump(ballot)}, 200


@ballots_bp.put("/<ballot_id>")
@jwt_required()
@swag_from({
    "tags": ["Ballots"],
    "summary": "Update ballot metadata (creator only, draft only)",
    "security": [{"BearerAuth": []}],
    "responses": {
        200: {"description": "Updated"},
        400: {"description": "Validation error"},
        403: {"description": "Forbidden"},
        409: {"description": "Ballot is not in draft"},
    }
})
def update_ballot(ballot_id):
    changes = load_or_abort(ballot_update_schema, request.get_json(silent=True) or {})
    ballot = ballot_service.update_ballot(ballot_id, current_user_id(), changes)
    return {"ballot": ballot_read_schema.dump(ballot)}, 200


@ballots_bp.delete("/<ballot_id>")
@jwt_required()
@swag_from({
    "tags": ["Ballots"],
    "summary": "Delete a draft ballot (creator only)",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "Deleted"}, 403: {"description": "Forbidden"}, 409: {"description": "Not a draft"}}
})
def delete_ballot(ballot_id):
    ballot_service.delete_ballot(ballot_id, current_user_id())
    return {"message": "Ballot deleted"}, 200


@ballots_bp.post("/<ballot_id>/start")
@jwt_required()
@swag_from({
    "tags": ["Ballots"],
    "summary": "Start a ballot: draft -> live",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "Live"}, 403: {"description": "Forbidden"}, 409: {"description": "Invalid state"}}
})
def start_ballot(ballot_id):
    ballot = ballot_service.start_ballot(ballot_id, current_user_id())
    return {"message": "Ballot started", "ballot": ballot_read_schema.dump(ballot)}, 200


@ballots_bp.post("/<ballot_id>/end")
@jwt_required()
@swag_from({
    "tags": ["Ballots"],
    "summary": "End a ballot: live -> completed, then store a result snapshot",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "Completed"}, 403: {"description": "Forbidden"}, 409: {"description": "Invalid state"}}
})
def end_ballot(ballot_id):
    ballot = ballot_service.end_ballot(ballot_id, current_user_id())
    return {"message": "Ballot ended", "ballot": ballot_read_schema.dump(ballot)}, 200


@ballots_bp.get("/<ballot_id>/status")
@jwt_required()
@swag_from({
    "tags": ["Ballots"],
    "summary": "Roster size, turnout and vote counts for a ballot",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "OK"}, 403: {"description": "Forbidden"}, 404: {"description": "Not found"}}
})
def ballot_status(ballot_id):
    ballot = ballot_service.get_ballot_for_viewer(ballot_id, current_user_id())
    return {"status": status_schema.dump(tabulation.ballot_status(ballot))}, 200


@ballots_bp.get("/<ballot_id>/questions")
@jwt_required()
@swag_from({
    "tags": ["Questions"],
    "summary": "List questions of a ballot in position order",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "OK"}, 403: {"description": "Forbidden"}, 404: {"description": "Not found"}}
})
def list_questions(ballot_id):
    questions = ballot_service.list_questions(ballot_id, current_user_id())
    return {"questions": question_read_many_schema.dump(questions)}, 200


@ballots_bp.post("/<ballot_id>/questions")
@jwt_required()
@swag_from({
    "tags": ["Questions"],
    "summary": "Append a question to a draft ballot",
    "security": [{"BearerAuth": []}],
    "responses": {
        201: {"description": "Created"},
        400: {"description": "Validation error"},
        403: {"description": "Forbidden"},
        409: {"description": "Ballot is not in draft"},
    }
})
def create_question(ballot_id):
    data = load_or_abort(question_create_schema, request.get_json(silent=True) or {})
    question = ballot_service.create_question(ballot_id, current_user_id(), data)
    return {"question": question_read_schema.dump(question)}, 201


@ballots_bp.put("/<ballot_id>/questions/order")
@jwt_required()
@swag_from({
    "tags": ["Questions"],
    "summary": "Reorder all questions of a draft ballot",
    "security": [{"BearerAuth": []}],
    "responses": {200: {"description": "Reordered"}, 400: {"description": "Validation error"}, 409: {"description": "Invalid state"}}
})
def reorder_questions(ballot_id):
    data = load_or_abort(reorder_schema, request.get_json(silent=True) or {})
    questions = ballot_service.reorder_questions(ballot_id, current_user_id(), data["ids"])
    return {"questions": question_read_many_schema.dump(questions)}, 200


@ballots_bp.put("/<ballot_id>/questions/<question_id>/options/order")
@jwt_required()
@swag_from({
    "tags": ["Questions"],
    "summary": "Reorder all options of a question on a draft ballot",
    "security": [{"BearerAuth": []}],
    "responses": {
        200: {"description": "Reordered"},
        400: {"description": "Validation error"},
        404: {"description": "Question not found"},
        409: {"description": "Invalid state"},
    }
})
def reorder_options(ballot_id, question_id):
    data = load_or_abort(reorder_schema, request.get_json(silent=True) or {})
    question = ballot_service.reorder_options(ballot_id, current_user_id(), question_id, data["ids"])
    return {"question": question_read_schema.dump(question)}, 200
