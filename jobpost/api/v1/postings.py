import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from jobpost.ai.types import CompletionClient, CompletionError
from jobpost.api.deps import completion_client, fingerprint_store, score_cache
from jobpost.core.cache import TTLCache
from jobpost.core.config import settings
from jobpost.core.fingerprint_store import FingerprintStore
from jobpost.core.rate_limit import rate_limit
from jobpost.optimization.pipeline import OptimizationError, optimize_and_rescore
from jobpost.schemas.api import OptimizeRequest, OptimizeResponse, ScoreRequest
from jobpost.schemas.document import JobDocument
from jobpost.schemas.scoring import ScoreReport
from jobpost.scoring.service import score_document

logger = logging.getLogger(__name__)

router = APIRouter()

_OPTIMIZATION_STATUS = {
    "completion_failed": status.HTTP_503_SERVICE_UNAVAILABLE,
    "malformed_model_output": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "fingerprint_store_failed": status.HTTP_502_BAD_GATEWAY,
    "empty_document": status.HTTP_400_BAD_REQUEST,
}


def _raise_optimization_http_error(exc: Exception) -> None:
    if isinstance(exc, OptimizationError):
        code = _OPTIMIZATION_STATUS.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        raise HTTPException(status_code=code, detail=str(exc)) from exc
    if isinstance(exc, CompletionError):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    raise exc


def _document(payload: ScoreRequest) -> JobDocument:
    return JobDocument(title=payload.title, body=payload.body, markup=payload.markup)


@router.post("/postings/score", response_model=ScoreReport)
@rate_limit()
async def score_posting(
    request: Request,
    payload: ScoreRequest,
    client: CompletionClient = Depends(completion_client),
    cache: TTLCache[ScoreReport] = Depends(score_cache),
):
    _ = request
    return await score_document(_document(payload), client, cache=cache)


@router.post("/postings/optimize", response_model=OptimizeResponse)
@rate_limit(settings.optimize_rate_limit)
async def optimize_posting(
    request: Request,
    payload: OptimizeRequest,
    client: CompletionClient = Depends(completion_client),
    store: FingerprintStore = Depends(fingerprint_store),
):
    _ = request
    try:
        outcome = await optimize_and_rescore(
            _document(payload),
            client,
            store,
            company_name=payload.company_name,
            original=payload.original_score,
        )
    except (OptimizationError, CompletionError) as exc:
        logger.warning("optimize_posting_failed error=%s", type(exc).__name__)
        _raise_optimization_http_error(exc)
    return OptimizeResponse(
        result=outcome.result,
        original_score=outcome.original,
        optimized_score=outcome.optimized,
        accepted=outcome.verdict.accepted,
        reason=outcome.verdict.reason,
    )
