from datetime import datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token

from ballotbox import create_app
from ballotbox.config import TestConfig
from ballotbox.extensions import db
from ballotbox.models import User
from ballotbox.services import ballots as ballot_service
from ballotbox.services import roster as roster_service


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(email, first_name=None, last_name=None):
        user = User(email=email, first_name=first_name, last_name=last_name)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com", "Olive", "Owner")


@pytest.fixture
def alice(make_user):
    return make_user("alice@example.com", "Alice", "Adams")


@pytest.fixture
def bob(make_user):
    return make_user("bob@example.com", "Bob", "Brown")


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=str(user.id))
        return {"Authorization": f"Bearer {token}"}
    return _headers


def ballot_payload(max_voters=2, questions=None, **overrides):
    start = datetime.utcnow() + timedelta(days=1)
    payload = {
        "title": "Board election",
        "description": "Annual board seats",
        "start_date": start,
        "end_date": start + timedelta(days=7),
        "max_voters": max_voters,
        "questions": questions or [
            {"title": "Chair", "options": [{"text": "A"}, {"text": "B"}]},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_ballot(owner):
    def _make(max_voters=2, questions=None, **overrides):
        return ballot_service.create_ballot(owner.id, **ballot_payload(max_voters, questions, **overrides))
    return _make


@pytest.fixture
def live_ballot(make_ballot, owner, alice, bob):
    """Two-voter ballot with alice and bob registered, already started."""
    ballot = make_ballot(
        max_voters=2,
        questions=[
            {"title": "Chair", "options": [{"text": "A"}, {"text": "B"}]},
            {"title": "Treasurer", "allow_write_in": True, "options": [{"text": "C"}]},
        ],
    )
    roster_service.add_voters(ballot.id, owner.id, [alice.email, bob.email])
    ballot_service.start_ballot(ballot.id, owner.id)
    return ballot


def option_id(ballot, question_index, text):
    question = ballot.questions[question_index]
    return next(o.id for o in question.options if o.text == text)
