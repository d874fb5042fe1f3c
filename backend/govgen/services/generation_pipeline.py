"""
Generation Pipeline — drives a Generation through reason → generate → validate.

Each stage is a separate call made by the client; nothing auto-advances.
A stage:

1. takes the single-flight slot for the generation (StageInProgress if busy)
2. re-reads the record and checks its precondition (PreconditionFailed)
3. calls the completion service (ModelUnavailable / ModelResponseInvalid)
4. commits its artifacts and the next status in one write

A model failure leaves the status where the stage found it (stage 1 has
already committed `reasoning` at that point), so the same stage can be
re-invoked without losing earlier artifacts. There is no automatic retry.
"""

import logging
import math
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from govgen.errors import (
    GovGenError, ModelResponseInvalid, StageInProgress, ValidationResponseMalformed,
)
from govgen.middleware.metrics import (
    generation_stage_duration_seconds, generation_stage_total, generation_stages_in_progress,
)
from govgen.models import Generation, Validation
from govgen.services.completion_client import CompletionClient
from govgen.services.context_assembler import ConcatenatingRetriever, ContextAssembler
from govgen.services.document_service import DocumentService
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
from govgen.services.generation_store import GenerationStore
from govgen.services.prompts import (
    VALIDATION_SCHEMA,
    build_code_messages,
    build_reasoning_messages,
    build_test_messages,
    build_validation_messages,
)
from govgen.services.validation_recorder import ValidationRecorder

logger = logging.getLogger(__name__)

RAW_TEXT_LOG_LIMIT = 2000

# Generation ids with a stage currently running in this process.
_inflight: set[int] = set()


@asynccontextmanager
async def single_flight(generation_id: int) -> AsyncIterator[None]:
    if generation_id in _inflight:
        raise StageInProgress(f"Generation {generation_id} already has a stage in progress")
    _inflight.add(generation_id)
    generation_stages_in_progress.inc()
    try:
        yield
    finally:
        _inflight.discard(generation_id)
        generation_stages_in_progress.dec()


def parse_verdict(payload: dict | str) -> ComplianceVerdict:
    """Turn the structured validation response into a verdict."""
    try:
        if isinstance(payload, str):
            return ComplianceVerdict.model_validate_json(payload)
        return ComplianceVerdict.model_validate(payload)
    except ValidationError as exc:
        raise ValidationResponseMalformed(
            f"Validation response did not match the verdict contract: {exc.error_count()} error(s)",
            raw_text=payload if isinstance(payload, str) else str(payload),
        ) from exc


def _log_malformed_verdict(generation_id: int, raw_text: str | None) -> None:
    text = raw_text or ""
    if len(text) > RAW_TEXT_LOG_LIMIT:
        text = text[:RAW_TEXT_LOG_LIMIT] + "...[truncated]"
    logger.warning(
        "Malformed validation response for generation %s: %r", generation_id, text,
        extra={"generation_id": generation_id},
    )


class GenerationPipeline:
    def __init__(
        self,
        session: AsyncSession,
        client: CompletionClient,
        assembler: ContextAssembler | None = None,
    ):
        self.session = session
        self.client = client
        self.store = GenerationStore(session)
        self.recorder = ValidationRecorder(session)
        self.assembler = assembler or ContextAssembler(ConcatenatingRetriever(DocumentService(session)))

    @asynccontextmanager
    async def _stage(self, stage: str, generation_id: int) -> AsyncIterator[None]:
        start = time.perf_counter()
        outcome = "error"
        try:
            async with single_flight(generation_id):
                yield
            outcome = "ok"
        except GovGenError as exc:
            outcome = exc.kind
            raise
        finally:
            generation_stage_total.labels(stage=stage, outcome=outcome).inc()
            generation_stage_duration_seconds.labels(stage=stage).observe(time.perf_counter() - start)

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    async def create(
        self, owner_id: str, *, title: str, context_query: str, description: str | None = None,
    ) -> Generation:
        generation = await self.store.create(
            owner_id, title=title, context_query=context_query, description=description,
        )
        logger.info("Generation %s created for %s", generation.id, owner_id,
                    extra={"generation_id": generation.id})
        return generation

    async def get(self, generation_id: int, owner_id: str | None = None) -> Generation:
        return await self.store.get(generation_id, owner_id)

    async def get_with_validation(
        self, generation_id: int, owner_id: str | None = None,
    ) -> tuple[Generation, Validation | None]:
        generation = await self.store.get(generation_id, owner_id)
        validation = await self.recorder.latest_for(generation.id)
        return generation, validation

    async def list_for_owner(self, owner_id: str) -> list[Generation]:
        return await self.store.list_by_owner(owner_id)

    # ------------------------------------------------------------------
    # Stage 1: chain-of-thought reasoning
    # ------------------------------------------------------------------

    async def reason(
        self, generation_id: int, owner_id: str | None = None, context_query: str | None = None,
    ) -> Generation:
        async with self._stage("reason", generation_id):
            generation = await self.store.get(generation_id, owner_id)
            ensure_can_reason(generation)
            query = context_query if context_query and context_query.strip() else generation.context_query

            generation = await self.store.apply(generation, enter_reasoning())
            context = await self.assembler.assemble(query, generation.owner_id)
            cot_reasoning = await self.client.complete(build_reasoning_messages(context, query))

            generation = await self.store.apply(generation, after_reasoning(cot_reasoning))
            logger.info(
                "Generation %s reasoning stored (%d chars, context %d chars)",
                generation.id, len(cot_reasoning), len(context),
                extra={"generation_id": generation.id},
            )
        return generation

    # ------------------------------------------------------------------
    # Stage 2: implementation + test suite
    # ------------------------------------------------------------------

    async def generate(self, generation_id: int, owner_id: str | None = None) -> Generation:
        async with self._stage("generate", generation_id):
            generation = await self.store.get(generation_id, owner_id)
            ensure_can_generate(generation)

            # Sequential: the test prompt embeds the generated implementation.
            started = time.perf_counter()
            generated_code = await self.client.complete(build_code_messages(generation.cot_reasoning))
            generated_tests = await self.client.complete(build_test_messages(generated_code))
            generation_time_ms = max(1, math.ceil((time.perf_counter() - started) * 1000))

            generation = await self.store.apply(
                generation, after_generation(generated_code, generated_tests, generation_time_ms),
            )
            logger.info(
                "Generation %s code (%d chars) and tests (%d chars) stored in %d ms",
                generation.id, len(generated_code), len(generated_tests), generation_time_ms,
                extra={"generation_id": generation.id, "duration_ms": generation_time_ms},
            )
        return generation

    # ------------------------------------------------------------------
    # Stage 3: model-judged compliance validation
    # ------------------------------------------------------------------

    async def validate(
        self, generation_id: int, owner_id: str | None = None,
    ) -> tuple[Generation, Validation]:
        async with self._stage("validate", generation_id):
            generation = await self.store.get(generation_id, owner_id)
            ensure_can_validate(generation)

            messages = build_validation_messages(generation.generated_code, generation.generated_tests)
            try:
                payload = await self.client.complete(messages, VALIDATION_SCHEMA)
                verdict = parse_verdict(payload)
            except ModelResponseInvalid as exc:
                _log_malformed_verdict(generation.id, exc.raw_text)
                raise ValidationResponseMalformed(
                    f"Validation response for generation {generation.id} is malformed: {exc.message}",
                    raw_text=exc.raw_text,
                ) from exc
            except ValidationResponseMalformed as exc:
                _log_malformed_verdict(generation.id, exc.raw_text)
                raise

            validation = await self.recorder.record(generation.id, verdict)
            generation = await self.store.apply(generation, after_validation())
            await self.session.refresh(validation)
            logger.info(
                "Generation %s validated: coverage=%s%% adr=%s pii=%s cp_ap_violations=%s",
                generation.id, verdict.test_coverage, verdict.adr_compliant,
                verdict.pii_masking_enforced, verdict.cp_ap_violations,
                extra={"generation_id": generation.id},
            )
        return generation, validation

    # ------------------------------------------------------------------
    # Caller-driven failure
    # ------------------------------------------------------------------

    async def fail(self, generation_id: int, owner_id: str | None = None, reason: str | None = None) -> Generation:
        async with single_flight(generation_id):
            generation = await self.store.get(generation_id, owner_id)
            ensure_can_fail(generation)
            generation = await self.store.apply(generation, mark_failed(reason))
        logger.info("Generation %s marked failed: %s", generation.id, reason or "no reason given",
                    extra={"generation_id": generation.id})
        return generation
