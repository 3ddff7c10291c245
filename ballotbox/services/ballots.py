"""Ballot lifecycle: draft -> live -> completed.

Every mutation here runs under a row lock on the ballot so that a transition
cannot interleave with roster changes or vote commits on the same ballot.
Only the ballot's creator may mutate it.
"""
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import InvalidState, CapacityExceeded, NotFound, InvalidBallot
from ..models.ballot import Ballot
from ..models.question import Question
from ..models.option import Option
from ..models.roster import RosterEntry
from ..utils.audit import audit_log
from ..utils.db import atomic
from ..utils.identity import as_uuid
from .access import get_ballot, get_owned_ballot, assert_can_view, visible_to
from . import roster, tabulation


def _in_position_order(items: list[dict]) -> list[dict]:
    # Explicit order_index wins; ties and missing indexes keep submission order
    indexed = sorted(enumerate(items), key=lambda pair: (pair[1].get("order_index", pair[0]), pair[0]))
    return [item for _, item in indexed]


def _build_question(ballot_id, data: dict, order_index: int) -> Question:
    question = Question(
        ballot_id=ballot_id,
        title=data["title"].strip(),
        description=(data.get("description") or None),
        allow_write_in=bool(data.get("allow_write_in", False)),
        order_index=order_index,
    )
    for position, opt in enumerate(_in_position_order(data.get("options") or [])):
        question.options.append(Option(
            text=opt["text"].strip(),
            sub_text=(opt.get("sub_text") or None),
            party_name=(opt.get("party_name") or None),
            order_index=position,
        ))
    return question


def _check_capacity_limit(max_voters: int) -> None:
    limit = current_app.config.get("BALLOT_MAX_VOTERS_LIMIT")
    if limit and max_voters > limit:
        raise InvalidBallot(f"max_voters cannot exceed {limit}", details={"max_voters": ["Too large"]})


def create_ballot(actor_id, **fields) -> Ballot:
    ballot, _ = create_ballot_with_roster(actor_id, **fields)
    return ballot


def create_ballot_with_roster(actor_id, *, title, start_date, end_date, max_voters, questions,
                              description=None, voters=None) -> tuple[Ballot, dict | None]:
    """Create a draft ballot, optionally seeding its roster in the same transaction.

    ``voters`` is a list of email strings. The seed goes through the same
    triage and capacity guard as ``roster.add_voters``; an over-capacity seed
    fails the whole creation. Returns the ballot and the roster outcome
    (``None`` when no seed was given).
    """
    owner_id = as_uuid(actor_id)
    _check_capacity_limit(max_voters)
    roster_outcome = None

    with atomic("create ballot"):
        ballot = Ballot(
            created_by=owner_id,
            title=title.strip(),
            description=(description or None),
            start_date=start_date,
            end_date=end_date,
            max_voters=max_voters,
            registered_voters=0,
            status=Ballot.STATUS_DRAFT,
        )
        db.session.add(ballot)
        db.session.flush()

        for position, q in enumerate(_in_position_order(questions)):
            db.session.add(_build_question(ballot.id, q, position))

        audit_log(
            action="BALLOT_CREATED",
            entity_type="BALLOT",
            entity_id=ballot.id,
            details={"title": ballot.title, "max_voters": max_voters, "questions": len(questions)},
            actor_id=owner_id,
        )

        if voters:
            roster_outcome, _ = roster.enroll(ballot, voters, actor_id=owner_id)

    current_app.logger.info("Ballot created: %s (%s)", ballot.title, ballot.id)
    return ballot, roster_outcome


def list_ballots(actor_id) -> list[Ballot]:
    """Ballots the caller created or is rostered on, newest first."""
    return (
        Ballot.query
        .filter(visible_to(as_uuid(actor_id)))
        .order_by(Ballot.created_at.desc())
        .all()
    )


def get_ballot_for_viewer(ballot_id, actor_id) -> Ballot:
    ballot = get_ballot(ballot_id)
    assert_can_view(ballot, actor_id)
    return ballot


def update_ballot(ballot_id, actor_id, changes: dict) -> Ballot:
    with atomic("update ballot"):
        ballot = get_owned_ballot(ballot_id, actor_id, for_update=True)
        if not ballot.can_edit():
            raise InvalidState("Ballot metadata can only be edited while in draft")

        start = changes.get("start_date", ballot.start_date)
        end = changes.get("end_date", ballot.end_date)
        if "start_date" in changes and start < datetime.utcnow():
            raise InvalidBallot("Start date cannot be in the past", details={"start_date": ["In the past"]})
        if end < start:
            raise InvalidBallot("End date cannot be before start date", details={"end_date": ["Before start_date"]})

        if "max_voters" in changes:
            _check_capacity_limit(changes["max_voters"])
            if changes["max_voters"] < ballot.registered_voters:
                raise CapacityExceeded(
                    "max_voters cannot be lower than the number of registered voters",
                    details={"registered_voters": ballot.registered_voters},
                )

        if "title" in changes:
            ballot.title = changes["title"].strip()
        if "description" in changes:
            ballot.description = changes.get("description") or None
        for key in ("start_date", "end_date", "max_voters"):
            if key in changes:
                setattr(ballot, key, changes[key])
        ballot.updated_at = datetime.utcnow()

        audit_log(
            action="BALLOT_UPDATED",
            entity_type="BALLOT",
            entity_id=ballot.id,
            details={"updated_fields": sorted(changes.keys())},
            actor_id=actor_id,
        )
    return ballot


def delete_ballot(ballot_id, actor_id) -> None:
    with atomic("delete ballot"):
        ballot = get_owned_ballot(ballot_id, actor_id, for_update=True)
        if ballot.status != Ballot.STATUS_DRAFT:
            raise InvalidState("Only draft ballots can be deleted")

        audit_log(
            action="BALLOT_DELETED",
            entity_type="BALLOT",
            entity_id=ballot.id,
            details={"title": ballot.title, "registered_voters": ballot.registered_voters},
            actor_id=actor_id,
        )
        RosterEntry.query.filter_by(ballot_id=ballot.id).delete(synchronize_session=False)
        db.session.delete(ballot)


def start_ballot(ballot_id, actor_id) -> Ballot:
    with atomic("start ballot"):
        ballot = get_owned_ballot(ballot_id, actor_id, for_update=True)
        ballot.start()
        audit_log(
            action="BALLOT_STARTED",
            entity_type="BALLOT",
            entity_id=ballot.id,
            details={"from_status": Ballot.STATUS_DRAFT, "to_status": Ballot.STATUS_LIVE},
            actor_id=actor_id,
        )

    current_app.logger.info("Ballot %s is live", ballot.id)
    return ballot


def end_ballot(ballot_id, actor_id) -> Ballot:
    with atomic("end ballot"):
        ballot = get_owned_ballot(ballot_id, actor_id, for_update=True)
        ballot.end()
        audit_log(
            action="BALLOT_ENDED",
            entity_type="BALLOT",
            entity_id=ballot.id,
            details={"from_status": Ballot.STATUS_LIVE, "to_status": Ballot.STATUS_COMPLETED},
            actor_id=actor_id,
        )

    current_app.logger.info("Ballot %s completed", ballot.id)

    # Snapshot is derived data; a failure here is recoverable by recomputation
    try:
        tabulation.persist_snapshot(ballot.id)
    except Exception:
        current_app.logger.exception("Result snapshot failed for ballot %s; recompute later", ballot.id)

    return ballot


def list_questions(ballot_id, actor_id) -> list[Question]:
    ballot = get_ballot_for_viewer(ballot_id, actor_id)
    return list(ballot.questions)


def create_question(ballot_id, actor_id, data: dict) -> Question:
    with atomic("create question"):
        ballot = get_owned_ballot(ballot_id, actor_id, for_update=True)
        if not ballot.can_edit():
            raise InvalidState("Questions can only be added while the ballot is in draft")

        next_index = (
            db.session.query(func.coalesce(func.max(Question.order_index), -1))
            .filter(Question.ballot_id == ballot.id)
            .scalar()
        ) + 1
        question = _build_question(ballot.id, data, next_index)
        db.session.add(question)
        db.session.flush()

        audit_log(
            action="QUESTION_CREATED",
            entity_type="QUESTION",
            entity_id=question.id,
            details={"ballot_id": str(ballot.id), "order_index": next_index},
            actor_id=actor_id,
        )
    return question


def _apply_order(items, requested_ids, label: str):
    by_id = {item.id: item for item in items}
    requested = [as_uuid(i, required=False) for i in requested_ids]
    if len(set(requested)) != len(requested) or set(requested) != set(by_id):
        raise InvalidBallot(
            f"Reorder must list every {label} of the ballot exactly once",
            details={"ids": [f"Expected {len(by_id)} distinct {label} ids"]},
        )
    for position, item_id in enumerate(requested):
        by_id[item_id].order_index = position


def reorder_questions(ballot_id, actor_id, question_ids: list) -> list[Question]:
    with atomic("reorder questions"):
        ballot = get_owned_ballot(ballot_id, actor_id, for_update=True)
        if not ballot.can_edit():
            raise InvalidState("Questions can only be reordered while the ballot is in draft")

        questions = Question.query.filter_by(ballot_id=ballot.id).all()
        _apply_order(questions, question_ids, "question")
        audit_log(
            action="QUESTIONS_REORDERED",
            entity_type="BALLOT",
            entity_id=ballot.id,
            details={"order": [str(i) for i in question_ids]},
            actor_id=actor_id,
        )

    return sorted(questions, key=lambda q: q.order_index)


def reorder_options(ballot_id, actor_id, question_id, option_ids: list) -> Question:
    with atomic("reorder options"):
        ballot = get_owned_ballot(ballot_id, actor_id, for_update=True)
        if not ballot.can_edit():
            raise InvalidState("Options can only be reordered while the ballot is in draft")

        question = Question.query.filter_by(id=as_uuid(question_id, required=False), ballot_id=ballot.id).first()
        if not question:
            raise NotFound("Question not found for this ballot")

        _apply_order(question.options, option_ids, "option")
        audit_log(
            action="OPTIONS_REORDERED",
            entity_type="QUESTION",
            entity_id=question.id,
            details={"order": [str(i) for i in option_ids]},
            actor_id=actor_id,
        )

    return question
