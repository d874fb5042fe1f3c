"""
Error kinds surfaced by the generation pipeline and its collaborators.

Services raise these; the API layer renders them through a single exception
handler registered in main.py, so routers never translate them by hand.

    InvalidInput                 422  missing/empty required fields
    NotFound                     404  unknown (or foreign-owned) identity
    PreconditionFailed           409  stage invoked out of order
    StageInProgress              409  another stage call holds the generation
    ModelUnavailable             503  completion service unreachable/erroring
    ModelResponseInvalid         502  completion content broke its contract
    ValidationResponseMalformed  502  compliance verdict could not be parsed
"""


class GovGenError(Exception):
    status_code: int = 500
    kind: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(GovGenError):
    status_code = 422
    kind = "invalid_input"


class NotFound(GovGenError):
    status_code = 404
    kind = "not_found"


class PreconditionFailed(GovGenError):
    status_code = 409
    kind = "precondition_failed"


class StageInProgress(GovGenError):
    status_code = 409
    kind = "stage_in_progress"


class ModelUnavailable(GovGenError):
    status_code = 503
    kind = "model_unavailable"


class ModelResponseInvalid(GovGenError):
    status_code = 502
    kind = "model_response_invalid"

    def __init__(self, message: str, raw_text: str | None = None):
        super().__init__(message)
        self.raw_text = raw_text


class ValidationResponseMalformed(GovGenError):
    status_code = 502
    kind = "validation_response_malformed"

    def __init__(self, message: str, raw_text: str | None = None):
        super().__init__(message)
        self.raw_text = raw_text


def require_text(value: str | None, field_name: str) -> str:
    """Reject missing or blank text fields with InvalidInput."""
    if value is None or not value.strip():
        raise InvalidInput(f"{field_name} must not be empty")
    return value
