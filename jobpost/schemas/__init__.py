from .api import OptimizeRequest, OptimizeResponse, ScoreRequest
from .document import JobDocument
from .extraction import (
    CompensationExtraction,
    CompensationFields,
    FieldExtraction,
    LocationExtraction,
    LocationFields,
)
from .fingerprint import (
    CompanyFingerprint,
    DetectedSection,
    FormattingProfile,
    StructuralAnalysis,
    ToneProfile,
)
from .optimization import (
    CoherenceResult,
    GlobalContext,
    ImprovementVerdict,
    OptimizationResult,
    OptimizedSection,
    SchemaCompensation,
    SchemaSnapshot,
    Section,
)
from .scoring import CategoryScore, ScoreReport

__all__ = [
    "ScoreRequest",
    "OptimizeRequest",
    "OptimizeResponse",
    "JobDocument",
    "FieldExtraction",
    "LocationFields",
    "LocationExtraction",
    "CompensationFields",
    "CompensationExtraction",
    "CategoryScore",
    "ScoreReport",
    "CompanyFingerprint",
    "DetectedSection",
    "FormattingProfile",
    "StructuralAnalysis",
    "ToneProfile",
    "Section",
    "OptimizedSection",
    "CoherenceResult",
    "SchemaCompensation",
    "SchemaSnapshot",
    "GlobalContext",
    "OptimizationResult",
    "ImprovementVerdict",
]
