"""Tests for stage preconditions and transitions (no database)."""

import pytest
from pydantic import ValidationError

from govgen.errors import PreconditionFailed, ValidationResponseMalformed
from govgen.models import Generation
from govgen.services.generation_pipeline import parse_verdict
from govgen.services.generation_state import (
    ComplianceVerdict,
    after_generation,
    after_reasoning,
    after_validation,
    enter_reasoning,
    ensure_can_fail,
    ensure_can_generate,
    ensure_can_reason,
    ensure_can_validate,
    mark_failed,
)


def _generation(status="pending", **fields) -> Generation:
    return Generation(id=1, owner_id="user-1", title="T", context_query="Q", status=status, **fields)


class TestPreconditions:
    @pytest.mark.parametrize("status", ["pending", "reasoning", "generating"])
    def test_reason_allowed(self, status):
        ensure_can_reason(_generation(status))

    @pytest.mark.parametrize("status", ["validating", "completed", "failed"])
    def test_reason_rejected(self, status):
        with pytest.raises(PreconditionFailed):
            ensure_can_reason(_generation(status))

    def test_generate_needs_reasoning(self):
        with pytest.raises(PreconditionFailed, match="reasoning not generated"):
            ensure_can_generate(_generation("generating"))
        ensure_can_generate(_generation("generating", cot_reasoning="steps"))

    def test_generate_rejected_after_completion(self):
        with pytest.raises(PreconditionFailed):
            ensure_can_generate(_generation("completed", cot_reasoning="steps"))

    def test_validate_needs_code(self):
        with pytest.raises(PreconditionFailed, match="code not generated"):
            ensure_can_validate(_generation("validating", cot_reasoning="steps"))
        ensure_can_validate(_generation("validating", cot_reasoning="steps", generated_code="x"))

    def test_completed_generation_can_be_revalidated(self):
        ensure_can_validate(_generation("completed", cot_reasoning="steps", generated_code="x"))

    def test_failed_generation_rejects_every_stage(self):
        failed = _generation("failed", cot_reasoning="steps", generated_code="x")
        for check in (ensure_can_reason, ensure_can_generate, ensure_can_validate, ensure_can_fail):
            with pytest.raises(PreconditionFailed):
                check(failed)

    @pytest.mark.parametrize("status", ["pending", "reasoning", "generating", "validating"])
    def test_fail_allowed_from_non_terminal(self, status):
        ensure_can_fail(_generation(status))

    def test_completed_cannot_fail(self):
        with pytest.raises(PreconditionFailed):
            ensure_can_fail(_generation("completed"))


class TestTransitions:
    def test_stage_outputs_and_next_status(self):
        assert enter_reasoning().values() == {"status": "reasoning"}
        assert after_reasoning("steps").values() == {"cot_reasoning": "steps", "status": "generating"}
        assert after_generation("code", "tests", 1200).values() == {
            "generated_code": "code",
            "generated_tests": "tests",
            "generation_time_ms": 1200,
            "status": "validating",
        }
        assert after_validation().values() == {"status": "completed"}
        assert mark_failed("gave up").values() == {"failure_reason": "gave up", "status": "failed"}


class TestVerdict:
    def test_camel_case_payload(self):
        verdict = ComplianceVerdict.model_validate({
            "testsPassed": False,
            "testCoverage": 40,
            "adrCompliant": True,
            "cpApViolations": 2,
            "piiMaskingEnforced": False,
            "details": "direct AP access",
        })
        assert verdict.test_coverage == 40
        assert verdict.cp_ap_violations == 2

    def test_negative_violations_rejected(self):
        with pytest.raises(ValidationError):
            ComplianceVerdict(
                tests_passed=True, test_coverage=50, adr_compliant=True,
                cp_ap_violations=-1, pii_masking_enforced=True, details="",
            )

    def test_parse_verdict_wraps_contract_errors(self):
        with pytest.raises(ValidationResponseMalformed) as exc_info:
            parse_verdict({"testsPassed": True})
        assert "testsPassed" in exc_info.value.raw_text
