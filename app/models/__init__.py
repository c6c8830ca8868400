# Import every model here so Alembic autogenerate sees all tables.

from app.models.account import Account  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.issue import Issue, IssueComment  # noqa: F401
from app.models.notification import Notification  # noqa: F401
