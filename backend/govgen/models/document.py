"""
GovernanceDocument model — ADRs, governance rules and platform standards that
feed the reasoning stage as retrieval context.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Text, Boolean, func
from sqlalchemy.orm import Mapped, mapped_column

from govgen.database import Base

DOCUMENT_TYPES = ("adr", "governance", "standard", "other")


class GovernanceDocument(Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text)
    doc_type: Mapped[str] = mapped_column(String(20))  # adr, governance, standard, other
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Reserved for semantic retrieval; nothing reads it yet.
    vectorized: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
