from .user import User  # noqa: F401
from .ballot import Ballot  # noqa: F401
from .question import Question  # noqa: F401
from .option import Option  # noqa: F401
from .roster import RosterEntry  # noqa: F401
from .vote import Vote  # noqa: F401
from .result_snapshot import ResultSnapshot  # noqa: F401
from .audit_log import AuditLog  # noqa: F401

# Import ALL models so SQLAlchemy registers them

__all__ = [
    "User",
    "Ballot",
    "Question",
    "Option",
    "RosterEntry",
    "Vote",
    "ResultSnapshot",
    "AuditLog",
]
