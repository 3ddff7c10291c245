import uuid
from datetime import datetime
from ..extensions import db

class User(db.Model):
    """Local projection of identity-provider accounts.

    Rows are written by the identity service; this app only reads them to link
    roster entries by email and to show display names.
    """

    __tablename__ = "users"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)

    # Opaque, supplied by the identity provider
    role = db.Column(db.String(30), nullable=False, default="voter")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
