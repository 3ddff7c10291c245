"""Vote casting.

A voter submits every answer in one call. The answers are validated against
the ballot definition before anything is written; then the roster entry's
``voted`` flag is flipped with a guarded UPDATE (``voted = false`` in the
WHERE clause) and the vote rows are inserted in the same transaction. Of two
concurrent submissions by one voter only one can match the guard; the other
sees ``AlreadyVoted``. The unique (question, voter) constraint backs this up.
"""
from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InvalidState, Forbidden, AlreadyVoted, InvalidAnswer, InvalidQuestion, InvalidOption
from ..models.ballot import Ballot
from ..models.roster import RosterEntry
from ..models.vote import Vote
from ..utils.audit import audit_log, safe_audit
from ..utils.db import atomic
from ..utils.identity import as_uuid
from .access import get_ballot, find_roster_entry

WRITE_IN_MAX_LENGTH = 200


def _validate_answers(ballot: Ballot, answers: list) -> list[dict]:
    """Check every answer against the ballot; returns normalized Vote kwargs."""
    if not answers:
        raise InvalidAnswer("At least one answer is required")

    questions = {q.id: q for q in ballot.questions}
    seen = set()
    validated = []

    for answer in answers:
        question = questions.get(as_uuid(answer.get("question_id"), required=False))
        if question is None:
            raise InvalidQuestion("Question does not belong to this ballot",
                                  details={"question_id": str(answer.get("question_id"))})
        if question.id in seen:
            raise InvalidAnswer("Each question can only be answered once",
                                details={"question_id": str(question.id)})
        seen.add(question.id)

        raw_option = answer.get("option_id")
        write_in = (answer.get("write_in") or "").strip()
        has_option = raw_option not in (None, "")

        if has_option == bool(write_in):
            raise InvalidAnswer("Provide exactly one of option_id or write_in",
                                details={"question_id": str(question.id)})

        if has_option:
            option_id = as_uuid(raw_option, required=False)
            if option_id not in question.option_ids():
                raise InvalidOption("Option does not belong to this question",
                                    details={"question_id": str(question.id), "option_id": str(raw_option)})
            validated.append({"question_id": question.id, "option_id": option_id, "write_in": None})
            continue

        if not question.allow_write_in:
            raise InvalidAnswer("This question does not accept write-in answers",
                                details={"question_id": str(question.id)})
        if len(write_in) > WRITE_IN_MAX_LENGTH:
            raise InvalidAnswer(f"Write-in answers are limited to {WRITE_IN_MAX_LENGTH} characters",
                                details={"question_id": str(question.id)})
        validated.append({"question_id": question.id, "option_id": None, "write_in": write_in})

    return validated


def _report_duplicate(ballot_id, voter_id):
    safe_audit(
        action="VOTE_DUPLICATE_ATTEMPT",
        entity_type="VOTE",
        details={"ballot_id": str(ballot_id), "voter_id": str(voter_id)},
        actor_id=voter_id,
    )


def cast_vote(ballot_id, voter_id, answers: list) -> dict:
    voter_uuid = as_uuid(voter_id)
    ballot = get_ballot(ballot_id)

    if ballot.status != Ballot.STATUS_LIVE:
        raise InvalidState("Ballot is not live for voting")

    entry = find_roster_entry(ballot.id, voter_uuid)
    if entry is None:
        raise Forbidden("You are not registered as a voter for this ballot")
    if entry.voted:
        _report_duplicate(ballot.id, voter_uuid)
        raise AlreadyVoted("You have already voted in this election")

    validated = _validate_answers(ballot, answers)
    ballot_key = ballot.id
    entry_id = entry.id
    cast_at = datetime.utcnow()

    try:
        with atomic("cast vote"):
            # Shared lock: end_ballot's FOR UPDATE waits for in-flight votes
            ballot = get_ballot(ballot_key, for_share=True)
            if ballot.status != Ballot.STATUS_LIVE:
                raise InvalidState("Ballot is not live for voting")

            flipped = db.session.execute(
                update(RosterEntry)
                .where(RosterEntry.id == entry_id, RosterEntry.voted.is_(False))
                .values(voted=True, voted_at=cast_at)
                .execution_options(synchronize_session=False)
            )
            if flipped.rowcount != 1:
                raise AlreadyVoted("You have already voted in this election")

            for item in validated:
                db.session.add(Vote(ballot_id=ballot.id, voter_id=voter_uuid, cast_at=cast_at, **item))
            db.session.flush()

            audit_log(
                action="VOTE_CAST",
                entity_type="BALLOT",
                entity_id=ballot.id,
                details={"roster_entry_id": str(entry_id), "answers": len(validated)},
                actor_id=voter_uuid,
            )
    except IntegrityError as exc:
        _report_duplicate(ballot_key, voter_uuid)
        raise AlreadyVoted("You have already voted in this election") from exc
    except AlreadyVoted:
        _report_duplicate(ballot_key, voter_uuid)
        raise

    current_app.logger.info("Voter %s cast %d answers in ballot %s", voter_uuid, len(validated), ballot_key)
    return {
        "message": "Vote successfully cast",
        "ballot_id": ballot_key,
        "roster_entry_id": entry_id,
        "votes_recorded": len(validated),
        "cast_at": cast_at,
    }


def vote_status(ballot_id, voter_id) -> dict:
    ballot = get_ballot(ballot_id)
    entry = find_roster_entry(ballot.id, voter_id)
    if entry is None:
        return {"registered": False, "has_voted": False, "voted_at": None}
    return {"registered": True, "has_voted": bool(entry.voted), "voted_at": entry.voted_at}
