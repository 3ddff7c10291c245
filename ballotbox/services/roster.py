"""Voter roster for a ballot.

``Ballot.registered_voters`` mirrors the number of roster rows. It is only
changed by a guarded UPDATE issued in the same transaction as the roster
insert/delete, while the ballot row is locked, so two concurrent batches can
never jointly push the roster past ``max_voters``.
"""
from datetime import datetime

from flask import current_app
from marshmallow import validate, ValidationError
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..errors import InvalidState, CapacityExceeded, AlreadyVoted, NotFound, Conflict
from ..models.ballot import Ballot
from ..models.roster import RosterEntry
from ..models.user import User
from ..utils.audit import audit_log
from ..utils.db import atomic
from ..utils.identity import as_uuid
from ..utils.mailer import send_ballot_invitation
from .access import get_owned_ballot

STATUS_ADDED = "added"
STATUS_SKIPPED = "skipped"

REASON_INVALID_EMAIL = "invalid_email"
REASON_DUPLICATE_IN_REQUEST = "duplicate_in_request"
REASON_ALREADY_REGISTERED = "already_registered"

_email_validator = validate.Email()


def normalize_email(raw) -> str:
    return (raw or "").strip().lower()


def _is_valid_email(email: str) -> bool:
    try:
        _email_validator(email)
    except ValidationError:
        return False
    return True


def _triage(emails: list) -> tuple[list[str], list[dict]]:
    """Split a request into unique candidate emails and items skipped up front."""
    candidates, skipped, seen = [], [], set()
    for raw in emails:
        email = normalize_email(raw)
        if not email or not _is_valid_email(email):
            skipped.append({"email": str(raw), "status": STATUS_SKIPPED, "reason": REASON_INVALID_EMAIL})
        elif email in seen:
            skipped.append({"email": email, "status": STATUS_SKIPPED, "reason": REASON_DUPLICATE_IN_REQUEST})
        else:
            seen.add(email)
            candidates.append(email)
    return candidates, skipped


def _bump_registered(ballot_id, delta: int) -> bool:
    """Apply ``delta`` to the roster counter iff the result stays within [0, max_voters]."""
    stmt = (
        update(Ballot)
        .where(
            Ballot.id == ballot_id,
            Ballot.registered_voters + delta <= Ballot.max_voters,
            Ballot.registered_voters + delta >= 0,
        )
        .values(registered_voters=Ballot.registered_voters + delta, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount == 1


def enroll(ballot: Ballot, emails: list, actor_id=None) -> tuple[dict, list[RosterEntry]]:
    """Register ``emails`` on ``ballot`` inside the caller's transaction.

    ``ballot`` must be row-locked by the caller or created in the same
    transaction. Raises ``CapacityExceeded`` for the whole batch; the caller's
    rollback discards any rows already staged. Returns the outcome dict and
    the staged entries.
    """
    candidates, results = _triage(emails)
    added_entries: list[RosterEntry] = []

    existing = set()
    if candidates:
        existing = {
            row.email for row in
            db.session.query(RosterEntry.email)
            .filter(RosterEntry.ballot_id == ballot.id, RosterEntry.email.in_(candidates))
        }
    accepted = [e for e in candidates if e not in existing]
    results.extend(
        {"email": e, "status": STATUS_SKIPPED, "reason": REASON_ALREADY_REGISTERED}
        for e in candidates if e in existing
    )

    if accepted:
        if len(accepted) > ballot.remaining_capacity():
            raise CapacityExceeded(
                "Cannot add voters: would exceed maximum voter limit",
                details={
                    "max_voters": ballot.max_voters,
                    "registered_voters": ballot.registered_voters,
                    "remaining_capacity": ballot.remaining_capacity(),
                    "requested": len(accepted),
                },
            )

        users = {
            u.email.lower(): u.id for u in
            User.query.filter(func.lower(User.email).in_(accepted)).all()
        }
        for email in accepted:
            entry = RosterEntry(ballot_id=ballot.id, user_id=users.get(email), email=email, voted=False)
            db.session.add(entry)
            added_entries.append(entry)
        db.session.flush()

        # Store-side guard: holds even if our view of the counter is stale
        if not _bump_registered(ballot.id, len(accepted)):
            raise CapacityExceeded(
                "Cannot add voters: would exceed maximum voter limit",
                details={"max_voters": ballot.max_voters, "requested": len(accepted)},
            )

        results.extend({"email": e, "status": STATUS_ADDED, "reason": None} for e in accepted)

    audit_log(
        action="VOTERS_ADDED",
        entity_type="BALLOT",
        entity_id=ballot.id,
        details={"added": len(accepted), "skipped": len(results) - len(accepted)},
        actor_id=actor_id,
    )

    outcome = {
        "added": len(accepted),
        "skipped": len(results) - len(accepted),
        "added_emails": accepted,
        "results": results,
    }
    return outcome, added_entries


def add_voters(ballot_id, actor_id, emails: list, send_invitations: bool = False) -> dict:
    try:
        with atomic("add voters"):
            ballot = get_owned_ballot(ballot_id, actor_id, for_update=True)
            if not ballot.accepts_voters():
                raise InvalidState("Cannot add voters to a completed ballot")
            outcome, added_entries = enroll(ballot, emails, actor_id=actor_id)
    except IntegrityError as exc:
        # A concurrent batch registered one of these emails first
        raise Conflict("One or more voters were registered concurrently; retry the request") from exc

    current_app.logger.info("Added %d voters to ballot %s", outcome["added"], ballot_id)

    if send_invitations and added_entries:
        _dispatch_invitations(ballot_id, added_entries)

    return outcome


def _dispatch_invitations(ballot_id, entries: list[RosterEntry]) -> None:
    """Fire-and-forget; runs after the roster commit and never undoes it."""
    ballot = db.session.get(Ballot, as_uuid(ballot_id))
    notified = []
    for entry in entries:
        try:
            send_ballot_invitation(entry.email, ballot)
            notified.append(entry.id)
        except Exception:
            current_app.logger.exception("Failed to send ballot invitation to %s", entry.email)

    if not notified:
        return
    try:
        db.session.execute(
            update(RosterEntry)
            .where(RosterEntry.id.in_(notified))
            .values(invitation_sent=True)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to record invitation delivery for ballot %s", ballot_id)


def remove_voter(ballot_id, actor_id, entry_id) -> None:
    with atomic("remove voter"):
        ballot = get_owned_ballot(ballot_id, actor_id, for_update=True)
        if ballot.status != Ballot.STATUS_DRAFT:
            raise InvalidState("Voters can only be removed from ballots in draft status")

        entry = (
            RosterEntry.query
            .filter_by(id=as_uuid(entry_id, required=False), ballot_id=ballot.id)
            .with_for_update(of=RosterEntry)
            .first()
        )
        if not entry:
            raise NotFound("Voter not found for this ballot")
        if entry.voted:
            raise AlreadyVoted("Cannot remove a voter who has already voted")

        db.session.delete(entry)
        db.session.flush()
        if not _bump_registered(ballot.id, -1):
            raise Conflict("Roster counter out of sync; retry the request")

        audit_log(
            action="VOTER_REMOVED",
            entity_type="ROSTER",
            entity_id=entry.id,
            details={"ballot_id": str(ballot.id), "email": entry.email},
            actor_id=actor_id,
        )

    current_app.logger.info("Removed voter %s from ballot %s", entry_id, ballot_id)


def list_voters(ballot_id, actor_id) -> list[RosterEntry]:
    ballot = get_owned_ballot(ballot_id, actor_id)
    return (
        RosterEntry.query
        .filter_by(ballot_id=ballot.id)
        .order_by(RosterEntry.email.asc())
        .all()
    )
