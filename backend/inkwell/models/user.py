"""
Inkwell Backend: User SQLAlchemy Model
=======================================

What:  ORM model for the `users` table.
Who:   Used by SqlUserRepository and by Alembic.

Table Design:
    - Integer identity primary key (claims carry it as `user_id`)
    - username / email unique
    - password holds the bcrypt hash, never the plain text
    - status: 1 active, 0 disabled
    - deleted_at: soft delete marker; rows with a value are invisible to
      every repository query but stay in the table
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from inkwell.database import Base

USER_STATUS_ACTIVE = 1
USER_STATUS_DISABLED = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    # BIGINT on PostgreSQL; SQLite only autoincrements INTEGER primary keys
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    avatar: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        default=USER_STATUS_ACTIVE,
        comment="1 active, 0 disabled",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None, index=True
    )

    @property
    def is_active(self) -> bool:
        return self.status == USER_STATUS_ACTIVE

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', status={self.status})>"
