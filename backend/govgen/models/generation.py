"""
Generation and Validation models.

A Generation is one run of the reason → generate → validate pipeline. Its
status is the persisted state of the pipeline state machine; the three text
artifacts fill in strictly in order (reasoning, then code, then tests).

A Validation is the model-judged compliance verdict for a generation. Rows are
append-only: re-validating a generation inserts a new row.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import String, Integer, DateTime, Text, Boolean, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from govgen.database import Base


class GenerationStatus(str, Enum):
    PENDING = "pending"
    REASONING = "reasoning"
    GENERATING = "generating"
    VALIDATING = "validating"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = {GenerationStatus.COMPLETED, GenerationStatus.FAILED}


class Generation(Base):
    __tablename__ = "generations"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    context_query: Mapped[str] = mapped_column(Text)
    cot_reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_tests: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=GenerationStatus.PENDING.value, index=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    generation_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())


class Validation(Base):
    __tablename__ = "validations"

    id: Mapped[int] = mapped_column(primary_key=True)
    generation_id: Mapped[int] = mapped_column(ForeignKey("generations.id", ondelete="CASCADE"), index=True)
    tests_passed: Mapped[bool] = mapped_column(Boolean, default=False)
    test_coverage: Mapped[int] = mapped_column(Integer, default=0)  # 0-100, as reported by the model
    adr_compliant: Mapped[bool] = mapped_column(Boolean, default=False)
    cp_ap_violations: Mapped[int] = mapped_column(Integer, default=0)
    pii_masking_enforced: Mapped[bool] = mapped_column(Boolean, default=False)
    validation_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    @property
    def fully_compliant(self) -> bool:
        return self.adr_compliant and self.pii_masking_enforced and self.cp_ap_violations == 0
