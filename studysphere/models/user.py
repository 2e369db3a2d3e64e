"""
StudySphere — User and UserSubject models.
"""

from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studysphere.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    avatar_url: Mapped[str] = mapped_column(
        String, nullable=False, default="", server_default=""
    )
    bio: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=""
    )
    learning_style: Mapped[str] = mapped_column(
        String, nullable=False, comment="Visual / Auditory / Kinesthetic / Reading/Writing"
    )
    preferred_methods: Mapped[list | None] = mapped_column(
        JSONB, nullable=True, comment="Array of study method labels"
    )
    availability: Mapped[list | None] = mapped_column(
        JSONB, nullable=True, comment="Array of availability slot labels"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    # ── Relationships ──────────────────────────────────────────────
    subjects: Mapped[list["UserSubject"]] = relationship(
        "UserSubject",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserSubject.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User {self.email!r} id={self.id}>"


class UserSubject(Base):
    __tablename__ = "user_subjects"
    __table_args__ = (
        UniqueConstraint("user_id", "subject_id", name="uq_user_subject"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    subject_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("subjects.id"), nullable=False
    )
    role: Mapped[str] = mapped_column(
        String, nullable=False, comment="Needs Help / Can Help"
    )
    position: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Order chosen by the user"
    )

    # ── Relationships ──────────────────────────────────────────────
    user: Mapped["User"] = relationship("User", back_populates="subjects")

    def __repr__(self) -> str:
        return (
            f"<UserSubject user={self.user_id} subject={self.subject_id} "
            f"role={self.role!r}>"
        )
