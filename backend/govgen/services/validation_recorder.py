"""Append-only storage of compliance verdicts."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from govgen.models import Validation
from govgen.services.generation_state import ComplianceVerdict


class ValidationRecorder:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, generation_id: int, verdict: ComplianceVerdict) -> Validation:
        """Stage a new Validation row. Committed with the status change that follows."""
        validation = Validation(
            generation_id=generation_id,
            tests_passed=verdict.tests_passed,
            test_coverage=verdict.test_coverage,
            adr_compliant=verdict.adr_compliant,
            cp_ap_violations=verdict.cp_ap_violations,
            pii_masking_enforced=verdict.pii_masking_enforced,
            validation_details=verdict.details,
        )
        self.session.add(validation)
        await self.session.flush()
        return validation

    async def latest_for(self, generation_id: int) -> Validation | None:
        result = await self.session.execute(
            select(Validation)
            .where(Validation.generation_id == generation_id)
            .order_by(Validation.created_at.desc(), Validation.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

