from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from todo_api.core.database import Base
from todo_api.models.user import utcnow


class Todo(Base):
    """
    A user-owned task record.

    Uploaded image/file bytes live on disk; the row only keeps the generated
    filenames. Tags are child rows so the tag filter can run in the database.
    """
    __tablename__ = "todos"

    id = Column(Integer, primary_key=True, index=True)
    # Owner is fixed at creation
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    image_path = Column(String, nullable=True)
    file_path = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow,
                        nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow, nullable=False)

    user = relationship("User", backref="todos")
    tag_entries = relationship(
        "TodoTag",
        order_by="TodoTag.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tags(self) -> list[str]:
        return [entry.name for entry in self.tag_entries]

    def set_tags(self, names: list[str]) -> None:
        """Replace tags, keeping the given order"""
        self.tag_entries = [
            TodoTag(name=name, position=position)
            for position, name in enumerate(names)
        ]


class TodoTag(Base):
    __tablename__ = "todo_tags"

    id = Column(Integer, primary_key=True)
    todo_id = Column(Integer, ForeignKey("todos.id", ondelete="CASCADE"),
                     nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String, nullable=False, index=True)
