import uuid
from datetime import datetime
from ..extensions import db

class Vote(db.Model):
    __tablename__ = "votes"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    ballot_id = db.Column(db.Uuid, db.ForeignKey("ballots.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = db.Column(db.Uuid, db.ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)

    # Exactly one of option_id / write_in
    option_id = db.Column(db.Uuid, db.ForeignKey("options.id", ondelete="CASCADE"), nullable=True, index=True)
    write_in = db.Column(db.String(200), nullable=True)

    voter_id = db.Column(db.Uuid, nullable=False, index=True)
    cast_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        # One vote per voter per question
        db.UniqueConstraint("question_id", "voter_id", name="uq_votes_question_voter"),
        db.CheckConstraint(
            "(option_id IS NOT NULL AND write_in IS NULL) OR (option_id IS NULL AND write_in IS NOT NULL)",
            name="ck_votes_option_xor_write_in",
        ),
        db.Index("ix_votes_ballot_voter", "ballot_id", "voter_id"),
    )
