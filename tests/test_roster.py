import pytest

from ballotbox.errors import CapacityExceeded, InvalidState, Forbidden, AlreadyVoted, NotFound
from ballotbox.extensions import db, mail
from ballotbox.models import Ballot, RosterEntry
from ballotbox.services import ballots as ballot_service
from ballotbox.services import roster as roster_service
from ballotbox.services import voting as voting_service

from conftest import ballot_payload, option_id


def roster_size(ballot_id):
    return RosterEntry.query.filter_by(ballot_id=ballot_id).count()


def counter(ballot_id):
    db.session.expire_all()
    return db.session.get(Ballot, ballot_id).registered_voters


def test_add_voters_updates_counter(make_ballot, owner):
    ballot = make_ballot(max_voters=5)

    outcome = roster_service.add_voters(ballot.id, owner.id, ["A@Example.com", "b@example.com"])

    assert outcome["added"] == 2
    assert outcome["skipped"] == 0
    assert sorted(outcome["added_emails"]) == ["a@example.com", "b@example.com"]
    assert counter(ballot.id) == roster_size(ballot.id) == 2


def test_add_voters_skips_invalid_and_duplicates(make_ballot, owner):
    ballot = make_ballot(max_voters=5)
    roster_service.add_voters(ballot.id, owner.id, ["a@example.com"])

    outcome = roster_service.add_voters(
        ballot.id, owner.id, ["a@example.com", "not-an-email", "c@example.com", "C@example.com"],
    )

    reasons = {(r["email"], r["reason"]) for r in outcome["results"] if r["status"] == "skipped"}
    assert reasons == {
        ("a@example.com", "already_registered"),
        ("not-an-email", "invalid_email"),
        ("c@example.com", "duplicate_in_request"),
    }
    assert outcome["added_emails"] == ["c@example.com"]
    assert counter(ballot.id) == roster_size(ballot.id) == 2


def test_batch_over_capacity_is_rejected_whole(make_ballot, owner):
    ballot = make_ballot(max_voters=2)
    roster_service.add_voters(ballot.id, owner.id, ["a@example.com"])

    with pytest.raises(CapacityExceeded):
        roster_service.add_voters(ballot.id, owner.id, ["b@example.com", "c@example.com"])

    assert counter(ballot.id) == roster_size(ballot.id) == 1


def test_capacity_is_exact(make_ballot, owner):
    ballot = make_ballot(max_voters=2)
    roster_service.add_voters(ballot.id, owner.id, ["a@example.com", "b@example.com"])

    with pytest.raises(CapacityExceeded):
        roster_service.add_voters(ballot.id, owner.id, ["c@example.com"])
    assert counter(ballot.id) == 2


def test_duplicates_do_not_count_against_capacity(make_ballot, owner):
    ballot = make_ballot(max_voters=1)
    roster_service.add_voters(ballot.id, owner.id, ["a@example.com"])

    outcome = roster_service.add_voters(ballot.id, owner.id, ["a@example.com"])
    assert outcome["added"] == 0
    assert counter(ballot.id) == 1


def test_existing_accounts_are_linked(make_ballot, owner, alice):
    ballot = make_ballot()
    roster_service.add_voters(ballot.id, owner.id, ["ALICE@example.com", "new@example.com"])

    entries = {e.email: e for e in roster_service.list_voters(ballot.id, owner.id)}
    assert entries["alice@example.com"].user_id == alice.id
    assert entries["alice@example.com"].display_name == "Alice Adams"
    assert entries["new@example.com"].user_id is None


def test_add_voters_allowed_while_live(make_ballot, owner):
    ballot = make_ballot(max_voters=3)
    ballot_service.start_ballot(ballot.id, owner.id)

    outcome = roster_service.add_voters(ballot.id, owner.id, ["late@example.com"])
    assert outcome["added"] == 1


def test_add_voters_rejected_when_completed(make_ballot, owner):
    ballot = make_ballot()
    ballot_service.start_ballot(ballot.id, owner.id)
    ballot_service.end_ballot(ballot.id, owner.id)

    with pytest.raises(InvalidState):
        roster_service.add_voters(ballot.id, owner.id, ["late@example.com"])


def test_only_creator_manages_roster(make_ballot, alice):
    ballot = make_ballot()
    with pytest.raises(Forbidden):
        roster_service.add_voters(ballot.id, alice.id, ["x@example.com"])
    with pytest.raises(Forbidden):
        roster_service.list_voters(ballot.id, alice.id)


def test_remove_voter_decrements_counter(make_ballot, owner):
    ballot = make_ballot()
    roster_service.add_voters(ballot.id, owner.id, ["a@example.com", "b@example.com"])
    entry = RosterEntry.query.filter_by(ballot_id=ballot.id, email="a@example.com").one()

    roster_service.remove_voter(ballot.id, owner.id, entry.id)

    assert counter(ballot.id) == roster_size(ballot.id) == 1


def test_remove_unknown_voter(make_ballot, owner):
    ballot = make_ballot()
    with pytest.raises(NotFound):
        roster_service.remove_voter(ballot.id, owner.id, "missing")


def test_remove_voter_only_in_draft(live_ballot, owner, alice):
    entry = RosterEntry.query.filter_by(ballot_id=live_ballot.id, user_id=alice.id).one()
    with pytest.raises(InvalidState):
        roster_service.remove_voter(live_ballot.id, owner.id, entry.id)


def test_voter_who_voted_cannot_be_removed(app, live_ballot, alice):
    voting_service.cast_vote(live_ballot.id, alice.id, [
        {"question_id": live_ballot.questions[0].id, "option_id": option_id(live_ballot, 0, "A")},
    ])
    entry = RosterEntry.query.filter_by(ballot_id=live_ballot.id, user_id=alice.id).one()

    # Force the ballot back to draft to reach the voted check
    db.session.get(Ballot, live_ballot.id).status = Ballot.STATUS_DRAFT
    db.session.commit()

    with pytest.raises(AlreadyVoted):
        roster_service.remove_voter(live_ballot.id, live_ballot.created_by, entry.id)
    assert counter(live_ballot.id) == 2


def test_invitations_sent_after_commit(make_ballot, owner):
    ballot = make_ballot()

    with mail.record_messages() as outbox:
        roster_service.add_voters(ballot.id, owner.id, ["a@example.com"], send_invitations=True)

    assert len(outbox) == 1
    assert outbox[0].recipients == ["a@example.com"]
    assert "Board election" in outbox[0].subject
    assert str(ballot.id) in outbox[0].body
    assert RosterEntry.query.filter_by(ballot_id=ballot.id).one().invitation_sent is True


def test_invitation_failure_keeps_roster(app, make_ballot, owner):
    ballot = make_ballot()
    app.config["MAIL_DEFAULT_SENDER"] = None

    outcome = roster_service.add_voters(ballot.id, owner.id, ["a@example.com"], send_invitations=True)

    assert outcome["added"] == 1
    entry = RosterEntry.query.filter_by(ballot_id=ballot.id).one()
    assert entry.invitation_sent is False


def test_counter_guard_rejects_batch_when_lock_view_is_stale(monkeypatch, make_ballot, owner):
    ballot = make_ballot(max_voters=2)
    original = roster_service.get_owned_ballot

    def stale_ballot(ballot_id, actor_id, for_update=False):
        # Another batch commits a registration between our read and our write
        real = original(ballot_id, actor_id, for_update=for_update)
        db.session.add(RosterEntry(ballot_id=real.id, email="racer@example.com", voted=False))
        db.session.query(Ballot).filter_by(id=real.id).update(
            {"registered_voters": Ballot.registered_voters + 1}, synchronize_session=False,
        )
        db.session.commit()
        return Ballot(
            id=real.id, created_by=real.created_by, title=real.title,
            max_voters=2, registered_voters=0, status=Ballot.STATUS_DRAFT,
        )

    monkeypatch.setattr(roster_service, "get_owned_ballot", stale_ballot)

    with pytest.raises(CapacityExceeded):
        roster_service.add_voters(ballot.id, owner.id, ["a@example.com", "b@example.com"])

    assert [e.email for e in RosterEntry.query.filter_by(ballot_id=ballot.id)] == ["racer@example.com"]
    assert counter(ballot.id) == roster_size(ballot.id) == 1


def test_create_ballot_seeds_roster(owner, alice):
    ballot, outcome = ballot_service.create_ballot_with_roster(
        owner.id, **ballot_payload(max_voters=3, voters=["ALICE@example.com", "bad", "new@example.com", "new@example.com"]),
    )

    assert outcome["added"] == 2
    assert sorted(outcome["added_emails"]) == ["alice@example.com", "new@example.com"]
    assert {r["reason"] for r in outcome["results"] if r["status"] == "skipped"} == {
        "invalid_email", "duplicate_in_request",
    }
    assert counter(ballot.id) == roster_size(ballot.id) == 2
    linked = RosterEntry.query.filter_by(ballot_id=ballot.id, email="alice@example.com").one()
    assert linked.user_id == alice.id


def test_create_ballot_without_seed_has_no_roster_outcome(owner):
    ballot, outcome = ballot_service.create_ballot_with_roster(owner.id, **ballot_payload())

    assert outcome is None
    assert roster_size(ballot.id) == 0


def test_over_capacity_seed_fails_creation(owner):
    with pytest.raises(CapacityExceeded):
        ballot_service.create_ballot_with_roster(
            owner.id, **ballot_payload(max_voters=1, voters=["a@example.com", "b@example.com"]),
        )

    assert Ballot.query.count() == 0
    assert RosterEntry.query.count() == 0
