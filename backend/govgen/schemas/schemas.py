"""
Pydantic schemas for API request/response models.
"""

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DocumentType = Literal["adr", "governance", "standard", "other"]


# ── Documents ──

class DocumentCreate(BaseModel):
    title: str = Field(..., max_length=255)
    description: str | None = None
    content: str
    type: DocumentType
    file_url: str | None = None
    file_key: str | None = None


class DocumentUpdate(BaseModel):
    title: str | None = Field(None, max_length=255)
    description: str | None = None
    content: str | None = None
    type: DocumentType | None = None


class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    title: str
    description: str | None
    content: str
    type: str = Field(validation_alias=AliasChoices("doc_type", "type"))
    file_url: str | None
    file_key: str | None
    vectorized: bool
    created_at: datetime | None
    updated_at: datetime | None


class DocumentListResponse(BaseModel):
    documents: list[DocumentOut]
    total: int


# ── Generations ──

class GenerationCreate(BaseModel):
    title: str = Field(..., max_length=255)
    description: str | None = None
    context_query: str


class GenerationCreated(BaseModel):
    id: int
    status: str


class GenerationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    title: str
    description: str | None
    context_query: str
    cot_reasoning: str | None
    generated_code: str | None
    generated_tests: str | None
    status: str
    failure_reason: str | None
    generation_time_ms: int | None
    created_at: datetime | None
    updated_at: datetime | None


class GenerationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str | None
    status: str
    generation_time_ms: int | None
    created_at: datetime | None
    updated_at: datetime | None


class GenerationListResponse(BaseModel):
    generations: list[GenerationSummary]
    total: int


class GenerationStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    updated_at: datetime | None


class ValidationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    generation_id: int
    tests_passed: bool
    test_coverage: int
    adr_compliant: bool
    cp_ap_violations: int
    pii_masking_enforced: bool
    validation_details: str | None
    fully_compliant: bool
    created_at: datetime | None


class GenerationWithValidation(BaseModel):
    generation: GenerationOut
    validation: ValidationOut | None = None


class ReasonRequest(BaseModel):
    context_query: str | None = None


class ReasonResponse(BaseModel):
    id: int
    status: str
    cot_reasoning: str


class GenerateResponse(BaseModel):
    id: int
    status: str
    generated_code: str
    generated_tests: str
    generation_time_ms: int


class ValidateResponse(BaseModel):
    id: int
    status: str
    validation: ValidationOut


class FailRequest(BaseModel):
    reason: str | None = Field(None, max_length=2000)


# ── Metrics ──

class SuccessMetricsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_generations: int
    completed_count: int
    success_rate: float
    avg_generation_time_ms: float
    avg_generation_time_seconds: float
    meets_time_target: bool
    validated_count: int
    avg_test_coverage: float
    fully_compliant_count: int
    status_breakdown: dict[str, int]
