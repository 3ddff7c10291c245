import uuid
from datetime import datetime
from ..extensions import db

class RosterEntry(db.Model):
    """One voter's eligibility for one ballot."""

    __tablename__ = "ballot_voters"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    ballot_id = db.Column(db.Uuid, db.ForeignKey("ballots.id", ondelete="CASCADE"), nullable=False, index=True)

    # Voter may not have an account yet
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=False)

    # Monotonic: false -> true, never reset
    voted = db.Column(db.Boolean, nullable=False, default=False)
    voted_at = db.Column(db.DateTime, nullable=True)
    invitation_sent = db.Column(db.Boolean, nullable=False, default=False)

    registration_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("ballot_id", "email", name="uq_ballot_voters_ballot_email"),
        db.Index("ix_ballot_voters_ballot_user", "ballot_id", "user_id"),
    )

    @property
    def display_name(self) -> str | None:
        if not self.user:
            return None
        name = " ".join(p for p in (self.user.first_name, self.user.last_name) if p)
        return name or None
