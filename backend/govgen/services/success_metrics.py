"""
Success metrics for an owner's generations.

Success rate is completed / total. Average generation time covers the
code+test stage of completed generations only; the target is under ten
minutes. Compliance figures come from the latest validation of each
generation and reflect model judgment, not executed tests.
"""

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from govgen.models import Generation, GenerationStatus, Validation

GENERATION_TIME_TARGET_SECONDS = 600


@dataclass
class SuccessMetrics:
    total_generations: int = 0
    completed_count: int = 0
    success_rate: float = 0.0
    avg_generation_time_ms: float = 0.0
    avg_generation_time_seconds: float = 0.0
    meets_time_target: bool = False
    validated_count: int = 0
    avg_test_coverage: float = 0.0
    fully_compliant_count: int = 0
    status_breakdown: dict[str, int] = field(default_factory=dict)


class SuccessMetricsService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def summarize(self, owner_id: str) -> SuccessMetrics:
        generations = list((await self.session.execute(
            select(Generation).where(Generation.owner_id == owner_id)
        )).scalars())

        metrics = SuccessMetrics(status_breakdown={s.value: 0 for s in GenerationStatus})
        if not generations:
            return metrics

        for g in generations:
            metrics.status_breakdown[g.status] = metrics.status_breakdown.get(g.status, 0) + 1

        completed = [g for g in generations if g.status == GenerationStatus.COMPLETED.value]
        metrics.total_generations = len(generations)
        metrics.completed_count = len(completed)
        metrics.success_rate = round(len(completed) / len(generations) * 100, 1)

        if completed:
            total_ms = sum(g.generation_time_ms or 0 for g in completed)
            avg_ms = total_ms / len(completed)
            metrics.avg_generation_time_ms = round(avg_ms, 1)
            metrics.avg_generation_time_seconds = round(avg_ms / 1000, 1)
            metrics.meets_time_target = avg_ms / 1000 < GENERATION_TIME_TARGET_SECONDS

        latest = await self._latest_validations([g.id for g in generations])
        if latest:
            metrics.validated_count = len(latest)
            metrics.avg_test_coverage = round(
                sum(v.test_coverage for v in latest) / len(latest), 1
            )
            metrics.fully_compliant_count = sum(1 for v in latest if v.fully_compliant)

        return metrics

    async def _latest_validations(self, generation_ids: list[int]) -> list[Validation]:
        result = await self.session.execute(
            select(Validation)
            .where(Validation.generation_id.in_(generation_ids))
            .order_by(Validation.generation_id, Validation.created_at.desc(), Validation.id.desc())
        )
        latest: dict[int, Validation] = {}
        for v in result.scalars():
            latest.setdefault(v.generation_id, v)
        return list(latest.values())
