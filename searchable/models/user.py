from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from ..database import Base

if TYPE_CHECKING:
    from .post import Post


class User(Base):
    __tablename__ = "users"

    # Searchable columns and their weights
    __searchable__ = {
        "columns": {
            "first_name": 10,
            "last_name": 10,
            "bio": 2,
            "email": 5,
            "posts.title": 2,
        },
        "joins": {
            "posts": ("users.id", "posts.user_id"),
        },
    }

    id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationship with posts
    posts: Mapped[List["Post"]] = relationship(
        "Post", back_populates="user", cascade="all, delete-orphan"
    )
