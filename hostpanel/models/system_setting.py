"""Key-value settings model."""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, func
from hostpanel.db.base import Base


class SystemSetting(Base):
    """Key-value system settings. Structured values are stored as JSON text."""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=True)
    value_type = Column(String(20), default="string", nullable=False)  # string, json
    category = Column(String(50), nullable=True, index=True)
    is_public = Column(Boolean, default=False, nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
