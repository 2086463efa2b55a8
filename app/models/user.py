"""
TravelPlaces Backend — User SQLAlchemy Model
==============================================

What:  ORM model for the `users` table of the credential store.
How:   Inherits from the credential store's DeclarativeBase; Alembic reads
       this for migrations.
Who:   UserService (register/login) and alembic/env.py.

Columns:
    username       Unique login name; lookups are by this column
    password_hash  bcrypt hash including its salt and cost ($2b$10$...)
    created_at     UTC registration time
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class User(Base):
    """A registered user of the (optional) login feature."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    username: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        unique=True,
        index=True,
        comment="Login name, unique across the store",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash (salt and cost embedded)",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the user registered (UTC)",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
