"""
StudySphere — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from studysphere.models.subject import Subject
from studysphere.models.user import User, UserSubject
from studysphere.models.group import Group, GroupMember
from studysphere.models.message import Message

__all__ = [
    "Subject",
    "User",
    "UserSubject",
    "Group",
    "GroupMember",
    "Message",
]
