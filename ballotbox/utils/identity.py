import uuid
from flask_jwt_extended import get_jwt_identity

from ..errors import Forbidden


def as_uuid(value, required: bool = True):
    """Coerce an identity/entity reference to a UUID.

    The identity provider hands us opaque strings; everything in the store is
    keyed by UUID.
    """
    if value is None or value == "":
        if required:
            raise Forbidden("Authenticated identity required")
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        if required:
            raise Forbidden("Unrecognized identity")
        return None


def current_user_id() -> uuid.UUID:
    """Identity of the caller; only valid under @jwt_required()."""
    return as_uuid(get_jwt_identity())
