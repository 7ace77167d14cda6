from __future__ import annotations
import uuid
from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy import String, Boolean, DateTime, func
from typing import Optional

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class AdminUser(Base):
    __tablename__ = 'admin_users'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False, default='')
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    last_login: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), nullable=True)

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, raw)


class Technician(Base):
    """A staff member who works tickets. Login secret is only ever stored hashed."""
    __tablename__ = 'technicians'
    AVATAR_COLORS = ('#EF4444', '#10B981', '#F59E0B', '#8B5CF6', '#EC4899', '#06B6D4')
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    specialty: Mapped[str] = mapped_column(String(128), nullable=False, default='')
    avatar_color: Mapped[str] = mapped_column(String(16), nullable=False, default='#3B82F6')
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    username: Mapped[Optional[str]] = mapped_column(String(64), unique=True, index=True, nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, raw)
