from govgen.models.document import GovernanceDocument, DOCUMENT_TYPES  # noqa: F401
from govgen.models.generation import (  # noqa: F401
    Generation, GenerationStatus, Validation, TERMINAL_STATUSES,
)
