"""
User account model.

Stores credentials and profile data for analysts using the dashboard.
"""

from typing import List, Optional
from urllib.parse import quote_plus

from sqlalchemy import Column, String, Text

from insightflow.models.base import Base, UUIDMixin, ModelMixin, utc_now_iso, load_json, dump_json


def build_avatar_url(first_name: Optional[str], last_name: Optional[str]) -> str:
    """
    Build an initials avatar URL for a user.

    Example:
        >>> build_avatar_url("Ada", "Lovelace")
        'https://ui-avatars.com/api/?name=Ada+Lovelace&background=0D8ABC&color=fff'
    """
    name = f"{quote_plus(first_name or '')}+{quote_plus(last_name or '')}"
    return f"https://ui-avatars.com/api/?name={name}&background=0D8ABC&color=fff"


class User(Base, UUIDMixin, ModelMixin):
    """
    Analyst account.

    Attributes:
        id: UUID primary key
        email: Unique login email
        username: Unique username (defaults to the email at signup)
        first_name / last_name: Display name parts
        hashed_password: Bcrypt hash (never store plaintext)
        role: Authorization role ("USER")
        avatar: Initials avatar URL
        created_at: Signup timestamp (ISO)
        last_login: Timestamp of the most recent successful login (ISO)
        analysis_history_ids: JSON list of UserAnalysis ids
    """

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String(32), nullable=False, default="USER")
    avatar = Column(String, nullable=True)
    created_at = Column(String, nullable=False, default=utc_now_iso)
    last_login = Column(String, nullable=True)
    analysis_history_ids = Column(Text, nullable=False, default="[]")

    def get_analysis_history_ids(self) -> List[str]:
        return load_json(self.analysis_history_ids, [])

    def add_analysis_id(self, analysis_id: str) -> None:
        """Append an analysis id to the history (no duplicates)."""
        ids = self.get_analysis_history_ids()
        if analysis_id not in ids:
            ids.append(analysis_id)
        self.analysis_history_ids = dump_json(ids)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r})"
