"""
StudySphere — Partner Matching API
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from studysphere.api.deps import get_matching_service, http_error
from studysphere.database import get_db
from studysphere.exceptions import StudySphereError
from studysphere.schemas.common import ANY
from studysphere.schemas.match import MatchFilters, PartnerSearchResponse
from studysphere.services.matching_service import MatchingService

logger = structlog.get_logger("studysphere.api.matching")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id}/partners — Ranked partner search
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}/partners",
    response_model=PartnerSearchResponse,
    summary="Find and rank study partners",
)
async def find_partners(
    user_id: int,
    subject: str = Query(ANY, description="Subject id, or 'any'"),
    role: str = Query(ANY, description="'Needs Help', 'Can Help' or 'any'; ignored without a subject"),
    study_method: str = Query(ANY, alias="studyMethod"),
    learning_style: str = Query(ANY, alias="learningStyle"),
    db: AsyncSession = Depends(get_db),
    matcher: MatchingService = Depends(get_matching_service),
) -> PartnerSearchResponse:
    """Rank every other user for ``user_id``, best match first.

    Candidates with equal scores are listed in ascending user id order.
    """
    try:
        filters = MatchFilters.model_validate(
            {
                "subject": subject,
                "role": role,
                "studyMethod": study_method,
                "learningStyle": learning_style,
            }
        )
    except ValidationError as exc:
        logger.info("find_partners_bad_filters", user_id=user_id, errors=exc.error_count())
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc

    try:
        return await matcher.find_partners(user_id, filters, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc
