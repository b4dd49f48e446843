"""Indexing API endpoints: candidate-changed events enter the pipeline here."""

import structlog
from fastapi import APIRouter, HTTPException, status

from candidate_search.api.dependencies import IndexingPipelineDep, map_domain_exception_to_http
from candidate_search.api.schemas import CandidateChangedSchema, IndexingJobAcceptedSchema
from candidate_search.domain.exceptions import DomainException

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/indexing", tags=["indexing"])


@router.post(
    "/candidates",
    response_model=IndexingJobAcceptedSchema,
    status_code=status.HTTP_202_ACCEPTED,
)
async def candidate_changed(
    event: CandidateChangedSchema,
    pipeline: IndexingPipelineDep,
) -> IndexingJobAcceptedSchema:
    """
    Accept a candidate-changed event.

    Skills are extracted and the text is sanitized before the job is queued;
    embedding and the index write happen later on a worker.
    """
    try:
        job = await pipeline.handle_candidate_changed(event.to_domain())
        return IndexingJobAcceptedSchema.from_domain(job)
    except DomainException as domain_exc:
        raise map_domain_exception_to_http(domain_exc)
    except HTTPException:
        raise
    except Exception as exc:  # pragma: no cover - unexpected errors bubble to API layer
        logger.error("Candidate indexing request failed", candidate_id=event.candidate_id, error=str(exc))
        raise HTTPException(
            status_code=500,
            detail="Candidate could not be queued for indexing",
        )
