"""Result tabulation.

Results are always derived from the votes table. ``persist_snapshot`` stores
a copy for completed ballots, but that copy is never read back in place of a
recount: it can be rewritten at any time with the same outcome.
"""
from collections import defaultdict
from datetime import datetime

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..errors import InvalidState
from ..models.ballot import Ballot
from ..models.roster import RosterEntry
from ..models.vote import Vote
from ..models.result_snapshot import ResultSnapshot
from ..utils.audit import audit_log
from ..utils.db import atomic
from .access import get_ballot


def percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    precision = current_app.config.get("RESULTS_PERCENT_PRECISION", 2)
    return round(part / whole * 100.0, precision)


def _roster_counts(ballot_id) -> tuple[int, int]:
    total, voted = (
        db.session.query(
            func.count(RosterEntry.id),
            func.coalesce(func.sum(case((RosterEntry.voted.is_(True), 1), else_=0)), 0),
        )
        .filter(RosterEntry.ballot_id == ballot_id)
        .one()
    )
    return int(total or 0), int(voted or 0)


def _vote_counts(ballot_id):
    totals = dict(
        db.session.query(Vote.question_id, func.count(Vote.id))
        .filter(Vote.ballot_id == ballot_id)
        .group_by(Vote.question_id)
        .all()
    )

    option_rows = (
        db.session.query(Vote.question_id, Vote.option_id, func.count(Vote.id))
        .filter(Vote.ballot_id == ballot_id, Vote.option_id.isnot(None))
        .group_by(Vote.question_id, Vote.option_id)
        .all()
    )
    by_option = {(qid, oid): int(n) for qid, oid, n in option_rows}

    write_in_rows = (
        db.session.query(Vote.question_id, Vote.write_in, func.count(Vote.id))
        .filter(Vote.ballot_id == ballot_id, Vote.write_in.isnot(None), Vote.write_in != "")
        .group_by(Vote.question_id, Vote.write_in)
        .all()
    )
    write_ins = defaultdict(list)
    for qid, text, n in write_in_rows:
        write_ins[qid].append({"text": text, "votes": int(n)})

    return totals, by_option, write_ins


def tabulate(ballot: Ballot) -> dict:
    """Count the votes of ``ballot``; read-only."""
    total_voters, voted_count = _roster_counts(ballot.id)
    totals, by_option, write_ins = _vote_counts(ballot.id)

    questions = []
    for question in ballot.questions:
        total = int(totals.get(question.id, 0))

        options = []
        for opt in question.options:
            votes = by_option.get((question.id, opt.id), 0)
            options.append({
                "option_id": opt.id,
                "text": opt.text,
                "sub_text": opt.sub_text,
                "party_name": opt.party_name,
                "order_index": opt.order_index,
                "votes": votes,
                "percentage": percentage(votes, total),
            })

        entries = sorted(write_ins.get(question.id, []), key=lambda e: (-e["votes"], e["text"]))
        write_in_votes = sum(e["votes"] for e in entries)

        questions.append({
            "question_id": question.id,
            "title": question.title,
            "order_index": question.order_index,
            "allow_write_in": question.allow_write_in,
            "total_votes": total,
            "options": options,
            "write_in": {
                "votes": write_in_votes,
                "percentage": percentage(write_in_votes, total),
                "entries": entries,
            },
        })

    return {
        "ballot_id": ballot.id,
        "title": ballot.title,
        "status": ballot.status,
        "total_voters": total_voters,
        "voted_count": voted_count,
        "participation_rate": percentage(voted_count, total_voters),
        "questions": questions,
    }


def compute_results(ballot_id) -> dict:
    return tabulate(get_ballot(ballot_id))


def persist_snapshot(ballot_id) -> int:
    """Recount and replace the stored snapshot rows; returns rows written."""
    with atomic("persist result snapshot"):
        ballot = get_ballot(ballot_id, for_update=True)
        if ballot.status != Ballot.STATUS_COMPLETED:
            raise InvalidState("Result snapshots are only stored for completed ballots")

        results = tabulate(ballot)
        calculated_at = datetime.utcnow()

        ResultSnapshot.query.filter_by(ballot_id=ballot.id).delete(synchronize_session=False)

        rows = []
        for q in results["questions"]:
            for opt in q["options"]:
                rows.append(ResultSnapshot(
                    ballot_id=ballot.id,
                    question_id=q["question_id"],
                    option_id=opt["option_id"],
                    is_write_in=False,
                    votes_count=opt["votes"],
                    percentage=opt["percentage"],
                    calculated_at=calculated_at,
                ))
            rows.append(ResultSnapshot(
                ballot_id=ballot.id,
                question_id=q["question_id"],
                option_id=None,
                is_write_in=True,
                votes_count=q["write_in"]["votes"],
                percentage=q["write_in"]["percentage"],
                calculated_at=calculated_at,
            ))
        db.session.add_all(rows)

        audit_log(
            action="RESULTS_SNAPSHOT_PERSISTED",
            entity_type="BALLOT",
            entity_id=ballot.id,
            details={"rows": len(rows), "participation_rate": results["participation_rate"]},
        )

    current_app.logger.info("Stored %d result rows for ballot %s", len(rows), ballot_id)
    return len(rows)


def get_snapshot(ballot_id) -> dict:
    ballot = get_ballot(ballot_id)
    rows = ResultSnapshot.query.filter_by(ballot_id=ballot.id).all()

    by_question = defaultdict(list)
    for row in rows:
        by_question[row.question_id].append(row)

    questions = []
    for question in ballot.questions:
        option_rank = {opt.id: opt.order_index for opt in question.options}
        stored = sorted(
            by_question.get(question.id, []),
            # write-in aggregate row last
            key=lambda r: (r.is_write_in, option_rank.get(r.option_id, 0)),
        )
        questions.append({
            "question_id": question.id,
            "rows": [
                {
                    "option_id": r.option_id,
                    "is_write_in": r.is_write_in,
                    "votes": r.votes_count,
                    "percentage": r.percentage,
                }
                for r in stored
            ],
        })

    return {
        "ballot_id": ballot.id,
        "calculated_at": max((r.calculated_at for r in rows), default=None),
        "questions": questions,
    }


def ballot_status(ballot: Ballot) -> dict:
    total_voters, voted_count = _roster_counts(ballot.id)
    votes_cast = (
        db.session.query(func.count(Vote.id))
        .filter(Vote.ballot_id == ballot.id)
        .scalar()
        or 0
    )
    return {
        "ballot_id": ballot.id,
        "status": ballot.status,
        "max_voters": ballot.max_voters,
        "registered_voters": ballot.registered_voters,
        "voted_count": voted_count,
        "participation_rate": percentage(voted_count, total_voters),
        "votes_cast": int(votes_cast),
        "started_at": ballot.started_at,
        "completed_at": ballot.completed_at,
    }
