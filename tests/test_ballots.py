import uuid
from datetime import datetime, timedelta

import pytest

from ballotbox.errors import Forbidden, InvalidState, InvalidBallot, CapacityExceeded, NotFound
from ballotbox.extensions import db
from ballotbox.models import Ballot, AuditLog, Question
from ballotbox.services import ballots as ballot_service
from ballotbox.services import roster as roster_service


def actions():
    return [row.action for row in AuditLog.query.order_by(AuditLog.created_at.asc()).all()]


def test_create_ballot_starts_in_draft(make_ballot, owner):
    ballot = make_ballot()

    assert ballot.status == Ballot.STATUS_DRAFT
    assert ballot.registered_voters == 0
    assert ballot.created_by == owner.id
    assert [q.title for q in ballot.questions] == ["Chair"]
    assert [o.text for o in ballot.questions[0].options] == ["A", "B"]
    assert "BALLOT_CREATED" in actions()


def test_questions_follow_submitted_order_index(make_ballot):
    ballot = make_ballot(questions=[
        {"title": "Second", "order_index": 1, "options": [{"text": "x"}]},
        {"title": "First", "order_index": 0, "options": [{"text": "y", "order_index": 1}, {"text": "z", "order_index": 0}]},
    ])

    assert [q.title for q in ballot.questions] == ["First", "Second"]
    assert [o.text for o in ballot.questions[0].options] == ["z", "y"]


def test_max_voters_above_configured_limit_is_rejected(app, make_ballot):
    app.config["BALLOT_MAX_VOTERS_LIMIT"] = 10
    with pytest.raises(InvalidBallot):
        make_ballot(max_voters=11)


def test_lifecycle_draft_live_completed(make_ballot, owner):
    ballot = make_ballot()

    ballot_service.start_ballot(ballot.id, owner.id)
    assert ballot.status == Ballot.STATUS_LIVE
    assert ballot.started_at is not None

    ballot_service.end_ballot(ballot.id, owner.id)
    assert ballot.status == Ballot.STATUS_COMPLETED
    assert ballot.completed_at is not None

    assert {"BALLOT_STARTED", "BALLOT_ENDED"} <= set(actions())


def test_transitions_are_not_reversible(make_ballot, owner):
    ballot = make_ballot()

    with pytest.raises(InvalidState):
        ballot_service.end_ballot(ballot.id, owner.id)

    ballot_service.start_ballot(ballot.id, owner.id)
    with pytest.raises(InvalidState):
        ballot_service.start_ballot(ballot.id, owner.id)

    ballot_service.end_ballot(ballot.id, owner.id)
    with pytest.raises(InvalidState):
        ballot_service.start_ballot(ballot.id, owner.id)
    with pytest.raises(InvalidState):
        ballot_service.end_ballot(ballot.id, owner.id)

    assert db.session.get(Ballot, ballot.id).status == Ballot.STATUS_COMPLETED


def test_only_creator_can_transition(make_ballot, alice):
    ballot = make_ballot()

    with pytest.raises(Forbidden):
        ballot_service.start_ballot(ballot.id, alice.id)
    assert db.session.get(Ballot, ballot.id).status == Ballot.STATUS_DRAFT


def test_unknown_ballot_is_not_found(owner):
    with pytest.raises(NotFound):
        ballot_service.start_ballot(uuid.uuid4(), owner.id)
    with pytest.raises(NotFound):
        ballot_service.start_ballot("not-a-uuid", owner.id)


def test_update_only_in_draft(make_ballot, owner):
    ballot = make_ballot()

    ballot_service.update_ballot(ballot.id, owner.id, {"title": "  Renamed  "})
    assert ballot.title == "Renamed"

    ballot_service.start_ballot(ballot.id, owner.id)
    with pytest.raises(InvalidState):
        ballot_service.update_ballot(ballot.id, owner.id, {"title": "Too late"})


def test_update_rejects_end_before_start(make_ballot, owner):
    ballot = make_ballot()
    with pytest.raises(InvalidBallot):
        ballot_service.update_ballot(ballot.id, owner.id, {"end_date": ballot.start_date - timedelta(hours=1)})


def test_update_cannot_shrink_capacity_below_roster(make_ballot, owner):
    ballot = make_ballot(max_voters=3)
    roster_service.add_voters(ballot.id, owner.id, ["a@example.com", "b@example.com"])

    with pytest.raises(CapacityExceeded):
        ballot_service.update_ballot(ballot.id, owner.id, {"max_voters": 1})

    ballot_service.update_ballot(ballot.id, owner.id, {"max_voters": 2})
    assert db.session.get(Ballot, ballot.id).max_voters == 2


def test_delete_draft_ballot_removes_roster(make_ballot, owner):
    ballot = make_ballot()
    ballot_id = ballot.id
    roster_service.add_voters(ballot_id, owner.id, ["a@example.com"])

    ballot_service.delete_ballot(ballot_id, owner.id)

    assert db.session.get(Ballot, ballot_id) is None
    assert Question.query.filter_by(ballot_id=ballot_id).count() == 0


def test_delete_live_ballot_is_rejected(make_ballot, owner):
    ballot = make_ballot()
    ballot_service.start_ballot(ballot.id, owner.id)
    with pytest.raises(InvalidState):
        ballot_service.delete_ballot(ballot.id, owner.id)


def test_list_ballots_scoped_to_creator_and_roster(make_ballot, owner, alice, bob):
    ballot = make_ballot()
    roster_service.add_voters(ballot.id, owner.id, [alice.email])

    assert [b.id for b in ballot_service.list_ballots(owner.id)] == [ballot.id]
    assert [b.id for b in ballot_service.list_ballots(alice.id)] == [ballot.id]
    assert ballot_service.list_ballots(bob.id) == []


def test_viewer_must_be_creator_or_rostered(make_ballot, owner, alice, bob):
    ballot = make_ballot()
    roster_service.add_voters(ballot.id, owner.id, [alice.email])

    assert ballot_service.get_ballot_for_viewer(ballot.id, alice.id).id == ballot.id
    with pytest.raises(Forbidden):
        ballot_service.get_ballot_for_viewer(ballot.id, bob.id)


def test_create_question_appends_at_next_position(make_ballot, owner):
    ballot = make_ballot()

    question = ballot_service.create_question(
        ballot.id, owner.id, {"title": "Secretary", "allow_write_in": True, "options": []},
    )

    assert question.order_index == 1
    assert [q.title for q in ballot_service.list_questions(ballot.id, owner.id)] == ["Chair", "Secretary"]


def test_create_question_rejected_once_live(make_ballot, owner):
    ballot = make_ballot()
    ballot_service.start_ballot(ballot.id, owner.id)
    with pytest.raises(InvalidState):
        ballot_service.create_question(ballot.id, owner.id, {"title": "Late", "options": [{"text": "x"}]})


def test_reorder_questions_requires_full_permutation(make_ballot, owner):
    ballot = make_ballot(questions=[
        {"title": "One", "options": [{"text": "a"}]},
        {"title": "Two", "options": [{"text": "b"}]},
    ])
    one, two = (q.id for q in ballot.questions)

    with pytest.raises(InvalidBallot):
        ballot_service.reorder_questions(ballot.id, owner.id, [two])
    with pytest.raises(InvalidBallot):
        ballot_service.reorder_questions(ballot.id, owner.id, [two, two])

    reordered = ballot_service.reorder_questions(ballot.id, owner.id, [two, one])
    assert [q.title for q in reordered] == ["Two", "One"]
    assert "QUESTIONS_REORDERED" in actions()


def test_reorder_options(make_ballot, owner):
    ballot = make_ballot()
    question = ballot.questions[0]
    a, b = (o.id for o in question.options)

    ballot_service.reorder_options(ballot.id, owner.id, question.id, [b, a])

    db.session.expire_all()
    assert [o.text for o in db.session.get(Ballot, ballot.id).questions[0].options] == ["B", "A"]


def test_reorder_options_unknown_question(make_ballot, owner):
    ballot = make_ballot()
    with pytest.raises(NotFound):
        ballot_service.reorder_options(ballot.id, owner.id, uuid.uuid4(), [])


def test_update_rejects_start_in_past(make_ballot, owner):
    ballot = make_ballot()
    original_start = ballot.start_date

    with pytest.raises(InvalidBallot) as excinfo:
        ballot_service.update_ballot(ballot.id, owner.id, {"start_date": datetime.utcnow() - timedelta(hours=1)})

    assert "start_date" in excinfo.value.details
    db.session.expire_all()
    assert db.session.get(Ballot, ballot.id).start_date == original_start
