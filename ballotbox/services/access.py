"""Ballot lookups and ownership/roster checks shared by the services."""
from sqlalchemy import or_, select

from ..extensions import db
from ..errors import NotFound, Forbidden
from ..models.ballot import Ballot
from ..models.roster import RosterEntry
from ..utils.identity import as_uuid


def get_ballot(ballot_id, for_update=False, for_share=False) -> Ballot:
    ballot_uuid = as_uuid(ballot_id, required=False)
    if ballot_uuid is None:
        raise NotFound("Ballot not found")

    lock = None
    if for_update:
        lock = True
    elif for_share:
        lock = {"read": True}

    if lock:
        ballot = db.session.get(Ballot, ballot_uuid, with_for_update=lock, populate_existing=True)
    else:
        ballot = db.session.get(Ballot, ballot_uuid)
    if not ballot:
        raise NotFound("Ballot not found")
    return ballot


def get_owned_ballot(ballot_id, actor_id, for_update=False) -> Ballot:
    ballot = get_ballot(ballot_id, for_update=for_update)
    if not ballot.is_owned_by(actor_id):
        raise Forbidden("You do not have permission to manage this ballot")
    return ballot


def find_roster_entry(ballot_id, user_id) -> RosterEntry | None:
    user_uuid = as_uuid(user_id, required=False)
    if user_uuid is None:
        return None
    return RosterEntry.query.filter_by(ballot_id=ballot_id, user_id=user_uuid).first()


def visible_to(user_id):
    """Filter clause: ballots the user created or is rostered on."""
    rostered = select(RosterEntry.ballot_id).where(RosterEntry.user_id == user_id)
    return or_(Ballot.created_by == user_id, Ballot.id.in_(rostered))


def assert_can_view(ballot: Ballot, actor_id) -> None:
    """Creator or rostered voter."""
    if ballot.is_owned_by(actor_id):
        return
    if find_roster_entry(ballot.id, actor_id) is None:
        raise Forbidden("You do not have access to this ballot")


def assert_can_view_results(ballot: Ballot, actor_id) -> None:
    # Completed results are public to any authenticated caller
    if ballot.status == Ballot.STATUS_COMPLETED:
        return
    assert_can_view(ballot, actor_id)
