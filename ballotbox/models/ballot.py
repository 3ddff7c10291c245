import uuid
from datetime import datetime
from ..extensions import db
from ..errors import InvalidState

class Ballot(db.Model):
    __tablename__ = "ballots"

    STATUS_DRAFT = "draft"
    STATUS_LIVE = "live"
    STATUS_COMPLETED = "completed"
    VALID_STATUSES = (STATUS_DRAFT, STATUS_LIVE, STATUS_COMPLETED)

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    created_by = db.Column(db.Uuid, nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT, index=True)

    max_voters = db.Column(db.Integer, nullable=False)
    # Mirrors COUNT(ballot_voters); only written inside the roster transaction
    registered_voters = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    questions = db.relationship(
        "Question",
        backref="ballot",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="[Question.order_index, Question.created_at]",
    )

    __table_args__ = (
        db.CheckConstraint("registered_voters >= 0", name="ck_ballots_registered_non_negative"),
        db.CheckConstraint("registered_voters <= max_voters", name="ck_ballots_registered_within_capacity"),
        db.CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in VALID_STATUSES) + ")",
            name="ck_ballots_status_valid",
        ),
    )

    def is_owned_by(self, user_id) -> bool:
        return user_id is not None and str(self.created_by) == str(user_id)

    def can_edit(self) -> bool:
        return self.status == self.STATUS_DRAFT

    def accepts_voters(self) -> bool:
        return self.status in (self.STATUS_DRAFT, self.STATUS_LIVE)

    def remaining_capacity(self) -> int:
        return max(self.max_voters - self.registered_voters, 0)

    def start(self):
        if self.status != self.STATUS_DRAFT:
            raise InvalidState("Only draft ballots can be started")
        self.status = self.STATUS_LIVE
        self.started_at = datetime.utcnow()
        self.updated_at = self.started_at

    def end(self):
        if self.status != self.STATUS_LIVE:
            raise InvalidState("Only live ballots can be ended")
        self.status = self.STATUS_COMPLETED
        self.completed_at = datetime.utcnow()
        self.updated_at = self.completed_at
