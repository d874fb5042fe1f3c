"""
Generation state machine.

    pending → reasoning → generating → validating → completed
        └──────────┴───────────┴────────────┴──→ failed

Each stage has a precondition check and a transition. Transitions are pure:
they take the stage's external result and return the field updates plus the
next status, leaving persistence to GenerationStore.apply.

Re-entry rules:
    reason    from pending, reasoning, generating (overwrites prior reasoning)
    generate  from reasoning, generating, validating, once reasoning exists
    validate  from validating, completed, once code exists
              (re-validating a completed generation appends a new Validation)
    fail      from any non-terminal status
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from govgen.errors import PreconditionFailed
from govgen.models import Generation, GenerationStatus, TERMINAL_STATUSES

REASON_FROM = {GenerationStatus.PENDING, GenerationStatus.REASONING, GenerationStatus.GENERATING}
GENERATE_FROM = {GenerationStatus.REASONING, GenerationStatus.GENERATING, GenerationStatus.VALIDATING}
VALIDATE_FROM = {GenerationStatus.VALIDATING, GenerationStatus.COMPLETED}


class ComplianceVerdict(BaseModel):
    """Model-judged compliance of a code/tests pair. Not ground truth."""

    model_config = ConfigDict(populate_by_name=True)

    tests_passed: bool = Field(alias="testsPassed")
    test_coverage: int = Field(alias="testCoverage", ge=0, le=100)
    adr_compliant: bool = Field(alias="adrCompliant")
    cp_ap_violations: int = Field(alias="cpApViolations", ge=0)
    pii_masking_enforced: bool = Field(alias="piiMaskingEnforced")
    details: str


@dataclass(frozen=True)
class Transition:
    status: GenerationStatus
    updates: dict = field(default_factory=dict)

    def values(self) -> dict:
        return {**self.updates, "status": self.status.value}


def _status(generation: Generation) -> GenerationStatus:
    return GenerationStatus(generation.status)


def _reject_if_failed(generation: Generation, stage: str) -> None:
    if _status(generation) is GenerationStatus.FAILED:
        raise PreconditionFailed(f"Generation {generation.id} has failed; cannot {stage}")


def ensure_can_reason(generation: Generation) -> None:
    _reject_if_failed(generation, "reason")
    status = _status(generation)
    if status not in REASON_FROM:
        raise PreconditionFailed(
            f"Generation {generation.id} is {status.value}; reasoning cannot be re-run"
        )


def ensure_can_generate(generation: Generation) -> None:
    _reject_if_failed(generation, "generate")
    if not generation.cot_reasoning:
        raise PreconditionFailed(f"Generation {generation.id}: CoT reasoning not generated yet")
    status = _status(generation)
    if status not in GENERATE_FROM:
        raise PreconditionFailed(
            f"Generation {generation.id} is {status.value}; code cannot be generated"
        )


def ensure_can_validate(generation: Generation) -> None:
    _reject_if_failed(generation, "validate")
    if not generation.generated_code:
        raise PreconditionFailed(f"Generation {generation.id}: code not generated yet")
    status = _status(generation)
    if status not in VALIDATE_FROM:
        raise PreconditionFailed(
            f"Generation {generation.id} is {status.value}; validation cannot run"
        )


def ensure_can_fail(generation: Generation) -> None:
    status = _status(generation)
    if status in TERMINAL_STATUSES:
        raise PreconditionFailed(f"Generation {generation.id} is already {status.value}")


def enter_reasoning() -> Transition:
    return Transition(GenerationStatus.REASONING)


def after_reasoning(cot_reasoning: str) -> Transition:
    return Transition(GenerationStatus.GENERATING, {"cot_reasoning": cot_reasoning})


def after_generation(generated_code: str, generated_tests: str, generation_time_ms: int) -> Transition:
    return Transition(
        GenerationStatus.VALIDATING,
        {
            "generated_code": generated_code,
            "generated_tests": generated_tests,
            "generation_time_ms": generation_time_ms,
        },
    )


def after_validation() -> Transition:
    return Transition(GenerationStatus.COMPLETED)


def mark_failed(reason: str | None) -> Transition:
    return Transition(GenerationStatus.FAILED, {"failure_reason": reason})
