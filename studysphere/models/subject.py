"""
StudySphere — Subject catalog model.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from studysphere.database import Base


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Subject {self.name!r} id={self.id}>"
