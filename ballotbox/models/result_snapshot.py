import uuid
from datetime import datetime
from ..extensions import db

class ResultSnapshot(db.Model):
    """Persisted tabulation row; never authoritative over the votes table."""

    __tablename__ = "election_results"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    ballot_id = db.Column(db.Uuid, db.ForeignKey("ballots.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = db.Column(db.Uuid, db.ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)

    # NULL option_id with is_write_in=True is the question's write-in aggregate
    option_id = db.Column(db.Uuid, db.ForeignKey("options.id", ondelete="CASCADE"), nullable=True)
    is_write_in = db.Column(db.Boolean, nullable=False, default=False)

    votes_count = db.Column(db.Integer, nullable=False, default=0)
    percentage = db.Column(db.Float, nullable=False, default=0.0)
    calculated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_election_results_ballot_question", "ballot_id", "question_id"),
    )
