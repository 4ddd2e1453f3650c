"""Idempotency record model.

One row per ``(endpoint_name, endpoint_scheme, key)`` holding the serialized
response first produced for that key and the instant it stops being served.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class IdempotencyKey(Base):
    __tablename__ = "idempotency_keys"

    endpoint_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    endpoint_scheme: Mapped[str] = mapped_column(String(16), primary_key=True)
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    response: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    valid_to: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_idempotency_keys_valid_to", "valid_to"),)
