"""
StudySphere — Partner Matching Engine

Ranks candidate study partners for a requesting user R:

  Filter — keep candidates that satisfy every active selector
           (subject, role-for-subject, study method, learning style).
  Score  — sum four independent components per candidate C:
             can_help_you        = 10 x |C CanHelp   ∩ R NeedsHelp|
             you_can_help        =  5 x |C NeedsHelp ∩ R CanHelp|
             shared_availability =  2 x |C.availability ∩ R.availability|
             shared_methods      =  1 x |C.methods ∩ R.methods|
  Order  — descending score; equal scores resolve to the lower user id,
           whatever order the pool arrived in.

``filter_candidates``, ``score_candidate`` and ``rank_candidates`` are pure
functions of their arguments.  ``find_partners`` wraps them with a consistent
roster snapshot from the store and the Redis ranking cache.
"""

from __future__ import annotations

from typing import Any, Iterable

import structlog
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from studysphere.catalog import subject_name
from studysphere.config import get_settings
from studysphere.exceptions import NotFoundError
from studysphere.schemas.common import ANY, SubjectRole
from studysphere.schemas.match import (
    MatchFilters,
    PartnerSearchResponse,
    RankedCandidate,
    ScoreBreakdown,
)
from studysphere.schemas.user import User

logger = structlog.get_logger("studysphere.matching_service")

ALL_ANY = MatchFilters()


class MatchingService:
    """Filter, score and order study-partner candidates.

    The roster loader and cache are injected so the service can be tested
    with mocks; without a cache every search is computed from scratch.
    """

    def __init__(
        self,
        profile_service: Any | None = None,
        cache: Any | None = None,
    ) -> None:
        self.profile_service = profile_service
        self.cache = cache

        settings = get_settings()
        self.can_help_points: int = settings.PARTNER_CAN_HELP_POINTS        # 10
        self.needs_help_points: int = settings.PARTNER_NEEDS_HELP_POINTS    # 5
        self.slot_points: int = settings.SHARED_SLOT_POINTS                 # 2
        self.method_points: int = settings.SHARED_METHOD_POINTS             # 1

    # ── Public API ────────────────────────────────────────────────────────

    async def find_partners(
        self,
        requester_id: int,
        filters: MatchFilters,
        db_session: AsyncSession,
    ) -> PartnerSearchResponse:
        """Rank the current roster for ``requester_id``.

        Reads the roster version first, then one snapshot of all users in a
        single query.  A write landing in between only means the fresh ranking
        is stored under the older version, which the next read skips.

        Raises
        ------
        NotFoundError
            If the requester is not in the roster.
        """
        log = logger.bind(requester_id=requester_id, filters=filters.cache_token())
        log.info("find_partners_start")

        roster_version = 0
        if self.cache is not None:
            roster_version = await self.cache.roster_version()
            cached = await self.cache.get_ranking(
                requester_id, roster_version, filters.cache_token()
            )
            if cached is not None:
                try:
                    cached_results = [RankedCandidate.model_validate(r) for r in cached]
                except ValidationError as exc:
                    log.warning("find_partners_cache_entry_invalid", error_count=exc.error_count())
                else:
                    log.info("find_partners_cache_hit", roster_version=roster_version)
                    return PartnerSearchResponse(
                        requester_id=requester_id,
                        filters=filters,
                        roster_version=roster_version,
                        cached=True,
                        results=cached_results,
                    )

        roster = await self.profile_service.load_roster(db_session)
        requester = next((u for u in roster if u.id == requester_id), None)
        if requester is None:
            log.warning("find_partners_requester_missing")
            raise NotFoundError("User", requester_id)

        results = self.rank_candidates(requester, roster, filters)

        if self.cache is not None:
            await self.cache.set_ranking(
                requester_id,
                roster_version,
                filters.cache_token(),
                [r.model_dump(mode="json", by_alias=True) for r in results],
            )

        log.info(
            "find_partners_complete",
            roster_size=len(roster),
            result_count=len(results),
            roster_version=roster_version,
        )
        return PartnerSearchResponse(
            requester_id=requester_id,
            filters=filters,
            roster_version=roster_version,
            results=results,
        )

    def rank_candidates(
        self,
        requester: User,
        pool: Iterable[User],
        filters: MatchFilters = ALL_ANY,
    ) -> list[RankedCandidate]:
        """Filter ``pool``, score every survivor against ``requester`` and
        return them best first.  An empty pool yields an empty list."""
        survivors = self.filter_candidates(requester, pool, filters)

        ranked: list[RankedCandidate] = []
        for candidate in survivors:
            breakdown = self.score_candidate(requester, candidate)
            best = self.best_match_subject(requester, candidate)
            ranked.append(
                RankedCandidate(
                    user=candidate,
                    score=breakdown.total,
                    breakdown=breakdown,
                    best_match_subject_id=best,
                    highlight=(
                        f"Great match! Can help with {subject_name(best)}."
                        if best is not None
                        else None
                    ),
                )
            )

        ranked.sort(key=lambda rc: (-rc.score, rc.user.id))

        logger.debug(
            "candidates_ranked",
            requester_id=requester.id,
            survivors=len(survivors),
            top_score=ranked[0].score if ranked else None,
        )
        return ranked

    # ── Filter stage ──────────────────────────────────────────────────────

    def filter_candidates(
        self,
        requester: User,
        pool: Iterable[User],
        filters: MatchFilters = ALL_ANY,
    ) -> list[User]:
        """Return the candidates (never the requester) passing ``filters``,
        in pool order."""
        return [
            candidate
            for candidate in pool
            if candidate.id != requester.id and self._passes_filters(candidate, filters)
        ]

    @staticmethod
    def _passes_filters(candidate: User, filters: MatchFilters) -> bool:
        profile = candidate.profile

        if filters.subject != ANY:
            if not any(s.subject_id == filters.subject for s in profile.subjects):
                return False

            role = filters.effective_role
            if role != ANY and not any(
                s.subject_id == filters.subject and s.role == role
                for s in profile.subjects
            ):
                return False

        if filters.study_method != ANY and filters.study_method not in profile.preferred_methods:
            return False

        if filters.learning_style != ANY and profile.learning_style != filters.learning_style:
            return False

        return True

    # ── Score stage ───────────────────────────────────────────────────────

    def score_candidate(self, requester: User, candidate: User) -> ScoreBreakdown:
        """Compatibility of ``candidate`` for ``requester``.

        Each matching interest adds its points independently, so a candidate
        overlapping on several subjects accumulates several increments.
        """
        mine = requester.profile
        theirs = candidate.profile

        my_needs = mine.subject_ids_with_role(SubjectRole.NEEDS_HELP)
        my_offers = mine.subject_ids_with_role(SubjectRole.CAN_HELP)

        can_help_you = 0
        you_can_help = 0
        for interest in theirs.subjects:
            if interest.role == SubjectRole.CAN_HELP and interest.subject_id in my_needs:
                can_help_you += self.can_help_points
            elif interest.role == SubjectRole.NEEDS_HELP and interest.subject_id in my_offers:
                you_can_help += self.needs_help_points

        shared_slots = set(theirs.availability) & set(mine.availability)
        shared_methods = set(theirs.preferred_methods) & set(mine.preferred_methods)

        return ScoreBreakdown(
            can_help_you=can_help_you,
            you_can_help=you_can_help,
            shared_availability=self.slot_points * len(shared_slots),
            shared_methods=self.method_points * len(shared_methods),
        )

    # ── Highlight ─────────────────────────────────────────────────────────

    @staticmethod
    def best_match_subject(requester: User, candidate: User) -> int | None:
        """First of the requester's NeedsHelp subjects (in profile order)
        that ``candidate`` can help with, or ``None``."""
        offers = candidate.profile.subject_ids_with_role(SubjectRole.CAN_HELP)
        for interest in requester.profile.subjects:
            if interest.role == SubjectRole.NEEDS_HELP and interest.subject_id in offers:
                return interest.subject_id
        return None

