"""Database model for persisted configuration settings."""

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.sql import func

from ..database import Base


class Setting(Base):
    """One dotted configuration key; ``value`` is always a JSON object (scalars as ``{"v": x}``)."""

    __tablename__ = "settings"

    key = Column(String(255), primary_key=True, nullable=False)
    value = Column(JSON, nullable=False)
    updated_at = Column(
        "updatedAt",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Setting key={self.key}>"


__all__ = ["Setting"]
