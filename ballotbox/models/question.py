import uuid
from datetime import datetime
from ..extensions import db

class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    ballot_id = db.Column(db.Uuid, db.ForeignKey("ballots.id", ondelete="CASCADE"), nullable=False, index=True)

    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    allow_write_in = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    options = db.relationship(
        "Option",
        backref="question",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="[Option.order_index, Option.created_at]",
    )

    def option_ids(self) -> set:
        return {opt.id for opt in self.options}
