"""Per-user election overview.

Roles are opaque here, so everything is scoped by relationship to the ballot:
ballots the caller created ("hosted") plus ballots the caller is rostered on.
"""
from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models.ballot import Ballot
from ..models.roster import RosterEntry
from ..models.user import User
from ..models.vote import Vote
from ..utils.identity import as_uuid
from .access import visible_to

DEFAULT_LIMIT = 5


def summary(actor_id) -> dict:
    user_id = as_uuid(actor_id)

    by_status = dict(
        db.session.query(Ballot.status, func.count(Ballot.id))
        .filter(visible_to(user_id))
        .group_by(Ballot.status)
        .all()
    )
    counts = {status: int(by_status.get(status, 0)) for status in Ballot.VALID_STATUSES}

    hosted_voters = (
        db.session.query(func.coalesce(func.sum(Ballot.registered_voters), 0))
        .filter(Ballot.created_by == user_id)
        .scalar()
    )
    hosted_votes = (
        db.session.query(func.count(Vote.id))
        .select_from(Vote)
        .join(Ballot, Ballot.id == Vote.ballot_id)
        .filter(Ballot.created_by == user_id)
        .scalar()
    )
    ballots_voted = (
        db.session.query(func.count(RosterEntry.id))
        .filter(RosterEntry.user_id == user_id, RosterEntry.voted.is_(True))
        .scalar()
    )

    return {
        "active_elections": counts[Ballot.STATUS_LIVE],
        "draft_elections": counts[Ballot.STATUS_DRAFT],
        "complete_elections": counts[Ballot.STATUS_COMPLETED],
        "total_voters": int(hosted_voters or 0),
        "total_votes": int(hosted_votes or 0),
        "ballots_voted": int(ballots_voted or 0),
    }


def _with_creator_names(ballots: list[Ballot]) -> list[dict]:
    creator_ids = {b.created_by for b in ballots}
    names = {}
    if creator_ids:
        for user in User.query.filter(User.id.in_(creator_ids)).all():
            names[user.id] = " ".join(p for p in (user.first_name, user.last_name) if p) or None
    return [{"ballot": b, "creator_name": names.get(b.created_by)} for b in ballots]


def recent_ballots(actor_id, limit: int = DEFAULT_LIMIT) -> list[dict]:
    ballots = (
        Ballot.query
        .filter(visible_to(as_uuid(actor_id)))
        .order_by(Ballot.created_at.desc())
        .limit(limit)
        .all()
    )
    return _with_creator_names(ballots)


def upcoming_ballots(actor_id, limit: int = DEFAULT_LIMIT) -> list[dict]:
    """Visible ballots not yet completed whose start date is still ahead, soonest first."""
    ballots = (
        Ballot.query
        .filter(
            visible_to(as_uuid(actor_id)),
            Ballot.status != Ballot.STATUS_COMPLETED,
            Ballot.start_date > datetime.utcnow(),
        )
        .order_by(Ballot.start_date.asc())
        .limit(limit)
        .all()
    )
    return _with_creator_names(ballots)
