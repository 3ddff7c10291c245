import uuid
from datetime import datetime
from ..extensions import db

class Option(db.Model):
    __tablename__ = "options"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    question_id = db.Column(db.Uuid, db.ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)

    text = db.Column(db.String(200), nullable=False)
    sub_text = db.Column(db.String(200), nullable=True)  # running mate, district, etc.
    party_name = db.Column(db.String(200), nullable=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
