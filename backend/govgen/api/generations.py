"""
Generations API — the governed code generation pipeline.

POST /api/generations                  create a pending generation
GET  /api/generations                  list the caller's generations
GET  /api/generations/{id}             full record
GET  /api/generations/{id}/status      lightweight status poll
GET  /api/generations/{id}/full        record plus latest validation
POST /api/generations/{id}/reason      stage 1: chain-of-thought reasoning
POST /api/generations/{id}/generate    stage 2: implementation + tests
POST /api/generations/{id}/validate    stage 3: compliance validation
POST /api/generations/{id}/fail        mark a non-terminal generation failed

Stages run to completion inside the request, including the model calls.
Clients sequence them and poll /status in between.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from govgen.api.deps import get_db, get_completion_client, require
from govgen.auth.permissions import Permission
from govgen.auth.context import RequestContext
from govgen.schemas.schemas import (
    FailRequest,
    GenerateResponse,
    GenerationCreate,
    GenerationCreated,
    GenerationListResponse,
    GenerationOut,
    GenerationStatusOut,
    GenerationSummary,
    GenerationWithValidation,
    ReasonRequest,
    ReasonResponse,
    ValidateResponse,
    ValidationOut,
)
from govgen.services.completion_client import CompletionClient
from govgen.services.generation_pipeline import GenerationPipeline

router = APIRouter(prefix="/api/generations", tags=["generations"])


def get_pipeline(
    db: AsyncSession = Depends(get_db),
    client: CompletionClient = Depends(get_completion_client),
) -> GenerationPipeline:
    return GenerationPipeline(db, client)


@router.post("", response_model=GenerationCreated, status_code=201)
async def create_generation(
    body: GenerationCreate,
    ctx: RequestContext = Depends(require(Permission.GENERATIONS_RUN)),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    generation = await pipeline.create(
        ctx.user_id,
        title=body.title,
        context_query=body.context_query,
        description=body.description,
    )
    return GenerationCreated(id=generation.id, status=generation.status)


@router.get("", response_model=GenerationListResponse)
async def list_generations(
    ctx: RequestContext = Depends(require(Permission.GENERATIONS_READ)),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    generations = await pipeline.list_for_owner(ctx.user_id)
    items = [GenerationSummary.model_validate(g) for g in generations]
    return GenerationListResponse(generations=items, total=len(items))


@router.get("/{generation_id}", response_model=GenerationOut)
async def get_generation(
    generation_id: int,
    ctx: RequestContext = Depends(require(Permission.GENERATIONS_READ)),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    return GenerationOut.model_validate(await pipeline.get(generation_id, ctx.user_id))


@router.get("/{generation_id}/status", response_model=GenerationStatusOut)
async def get_generation_status(
    generation_id: int,
    ctx: RequestContext = Depends(require(Permission.GENERATIONS_READ)),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    return GenerationStatusOut.model_validate(await pipeline.get(generation_id, ctx.user_id))


@router.get("/{generation_id}/full", response_model=GenerationWithValidation)
async def get_generation_with_validation(
    generation_id: int,
    ctx: RequestContext = Depends(require(Permission.GENERATIONS_READ)),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    generation, validation = await pipeline.get_with_validation(generation_id, ctx.user_id)
    return GenerationWithValidation(
        generation=GenerationOut.model_validate(generation),
        validation=ValidationOut.model_validate(validation) if validation else None,
    )


@router.post("/{generation_id}/reason", response_model=ReasonResponse)
async def reason(
    generation_id: int,
    body: ReasonRequest | None = None,
    ctx: RequestContext = Depends(require(Permission.GENERATIONS_RUN)),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    """Stage 1: chain-of-thought reasoning over the caller's governance documents."""
    query = body.context_query if body else None
    generation = await pipeline.reason(generation_id, ctx.user_id, context_query=query)
    return ReasonResponse(id=generation.id, status=generation.status, cot_reasoning=generation.cot_reasoning)


@router.post("/{generation_id}/generate", response_model=GenerateResponse)
async def generate(
    generation_id: int,
    ctx: RequestContext = Depends(require(Permission.GENERATIONS_RUN)),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    """Stage 2: implementation, then a test suite for it."""
    generation = await pipeline.generate(generation_id, ctx.user_id)
    return GenerateResponse(
        id=generation.id,
        status=generation.status,
        generated_code=generation.generated_code,
        generated_tests=generation.generated_tests,
        generation_time_ms=generation.generation_time_ms,
    )


@router.post("/{generation_id}/validate", response_model=ValidateResponse)
async def validate(
    generation_id: int,
    ctx: RequestContext = Depends(require(Permission.GENERATIONS_RUN)),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    """Stage 3: model-judged compliance verdict for the code/tests pair."""
    generation, validation = await pipeline.validate(generation_id, ctx.user_id)
    return ValidateResponse(
        id=generation.id,
        status=generation.status,
        validation=ValidationOut.model_validate(validation),
    )


@router.post("/{generation_id}/fail", response_model=GenerationStatusOut)
async def fail_generation(
    generation_id: int,
    body: FailRequest | None = None,
    ctx: RequestContext = Depends(require(Permission.GENERATIONS_RUN)),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    generation = await pipeline.fail(generation_id, ctx.user_id, reason=body.reason if body else None)
    return GenerationStatusOut.model_validate(generation)
