from datetime import datetime, timedelta

from ballotbox.extensions import db
from ballotbox.models import Ballot
from ballotbox.services import ballots as ballot_service
from ballotbox.services import dashboard
from ballotbox.services import roster as roster_service
from ballotbox.services import voting as voting_service

from conftest import option_id


def backdate(ballot, **fields):
    row = db.session.get(Ballot, ballot.id)
    for key, value in fields.items():
        setattr(row, key, value)
    db.session.commit()


def ids(items):
    return [item["ballot"].id for item in items]


def test_summary_for_creator(make_ballot, live_ballot, owner, alice):
    make_ballot(title="Draft one")
    done = make_ballot(title="Done")
    ballot_service.start_ballot(done.id, owner.id)
    ballot_service.end_ballot(done.id, owner.id)
    voting_service.cast_vote(live_ballot.id, alice.id, [
        {"question_id": live_ballot.questions[0].id, "option_id": option_id(live_ballot, 0, "A")},
        {"question_id": live_ballot.questions[1].id, "write_in": "Dave"},
    ])

    summary = dashboard.summary(owner.id)

    assert summary == {
        "active_elections": 1,
        "draft_elections": 1,
        "complete_elections": 1,
        "total_voters": 2,
        "total_votes": 2,
        "ballots_voted": 0,
    }


def test_summary_for_voter_counts_rostered_ballots_only(make_ballot, live_ballot, alice, bob):
    make_ballot(title="Not for alice")
    voting_service.cast_vote(live_ballot.id, alice.id, [
        {"question_id": live_ballot.questions[0].id, "option_id": option_id(live_ballot, 0, "B")},
    ])

    summary = dashboard.summary(alice.id)

    assert summary["active_elections"] == 1
    assert summary["draft_elections"] == 0
    assert summary["total_voters"] == 0
    assert summary["total_votes"] == 0
    assert summary["ballots_voted"] == 1
    assert dashboard.summary(bob.id)["ballots_voted"] == 0


def test_summary_for_stranger_is_empty(make_ballot, make_user):
    make_ballot()
    carol = make_user("carol@example.com")

    assert set(dashboard.summary(carol.id).values()) == {0}


def test_recent_ballots_newest_first_with_creator_name(make_ballot, owner, alice):
    now = datetime.utcnow()
    ballots = [make_ballot(title=f"Ballot {i}") for i in range(7)]
    for age, ballot in enumerate(reversed(ballots)):
        backdate(ballot, created_at=now - timedelta(minutes=age))

    recent = dashboard.recent_ballots(owner.id)

    assert ids(recent) == [b.id for b in reversed(ballots)][:5]
    assert {item["creator_name"] for item in recent} == {"Olive Owner"}
    assert dashboard.recent_ballots(alice.id) == []


def test_recent_ballots_include_rostered(make_ballot, owner, alice):
    ballot = make_ballot()
    roster_service.add_voters(ballot.id, owner.id, [alice.email])

    assert ids(dashboard.recent_ballots(alice.id)) == [ballot.id]


def test_upcoming_ballots_soonest_first(make_ballot, owner):
    now = datetime.utcnow()
    later = make_ballot(title="Later")
    sooner = make_ballot(title="Sooner")
    started = make_ballot(title="Already open")
    finished = make_ballot(title="Finished")
    backdate(later, start_date=now + timedelta(days=5), end_date=now + timedelta(days=9))
    backdate(sooner, start_date=now + timedelta(days=2), end_date=now + timedelta(days=9))
    backdate(started, start_date=now - timedelta(days=1))
    ballot_service.start_ballot(finished.id, owner.id)
    ballot_service.end_ballot(finished.id, owner.id)

    upcoming = dashboard.upcoming_ballots(owner.id)

    assert ids(upcoming) == [sooner.id, later.id]
