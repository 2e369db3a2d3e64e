"""Unit tests for MatchingService: filter, score and rank study partners."""
import pytest
from unittest.mock import patch, AsyncMock

from pydantic import ValidationError

from studysphere.exceptions import NotFoundError
from studysphere.schemas.common import ANY, LearningStyle, StudyMethod, SubjectRole
from studysphere.schemas.match import MatchFilters, RankedCandidate
from studysphere.services.matching_service import ALL_ANY, MatchingService
from tests.factories import make_user


@pytest.fixture
def matching_service(point_settings):
    with patch("studysphere.services.matching_service.get_settings") as mock:
        mock.return_value = point_settings
        service = MatchingService()
    return service


class TestFilterCandidates:
    """Tests for the filter stage."""

    def test_all_any_removes_only_requester(self, matching_service, demo_users):
        """With every selector at 'any' the pool comes back minus the requester."""
        requester = demo_users[0]
        survivors = matching_service.filter_candidates(requester, demo_users, ALL_ANY)
        assert survivors == [u for u in demo_users if u.id != requester.id]

    def test_requester_excluded_even_if_matching(self, matching_service, requester):
        filters = MatchFilters(subject=3)
        survivors = matching_service.filter_candidates(requester, [requester], filters)
        assert survivors == []

    def test_subject_filter(self, matching_service, demo_users):
        aisha = demo_users[0]
        survivors = matching_service.filter_candidates(aisha, demo_users, MatchFilters(subject=5))
        assert [u.id for u in survivors] == [2, 4]

    def test_subject_and_role_filter(self, matching_service, demo_users):
        aisha = demo_users[0]
        filters = MatchFilters(subject=2, role=SubjectRole.CAN_HELP)
        survivors = matching_service.filter_candidates(aisha, demo_users, filters)
        assert [u.id for u in survivors] == [4]

        filters = MatchFilters(subject=2, role=SubjectRole.NEEDS_HELP)
        survivors = matching_service.filter_candidates(aisha, demo_users, filters)
        assert [u.id for u in survivors] == [3]

    def test_role_without_subject_is_ignored(self, matching_service, demo_users):
        """A role with subject 'any' selects the same set as role 'any'."""
        aisha = demo_users[0]
        for role in SubjectRole:
            with_role = matching_service.filter_candidates(
                aisha, demo_users, MatchFilters(role=role)
            )
            without_role = matching_service.filter_candidates(aisha, demo_users, ALL_ANY)
            assert with_role == without_role

    def test_study_method_filter(self, matching_service, demo_users):
        aisha = demo_users[0]
        filters = MatchFilters(study_method=StudyMethod.QUIET_REVIEW)
        survivors = matching_service.filter_candidates(aisha, demo_users, filters)
        assert [u.id for u in survivors] == [2]

    def test_learning_style_filter(self, matching_service, demo_users):
        aisha = demo_users[0]
        filters = MatchFilters(learning_style=LearningStyle.VISUAL)
        survivors = matching_service.filter_candidates(aisha, demo_users, filters)
        assert [u.id for u in survivors] == [4]

    def test_filters_combine_conjunctively(self, matching_service, demo_users):
        aisha = demo_users[0]
        filters = MatchFilters(subject=1, study_method=StudyMethod.DISCUSSION)
        assert matching_service.filter_candidates(aisha, demo_users, filters) == []

    def test_filter_preserves_pool_order(self, matching_service, demo_users):
        aisha = demo_users[0]
        pool = list(reversed(demo_users))
        survivors = matching_service.filter_candidates(aisha, pool, ALL_ANY)
        assert [u.id for u in survivors] == [4, 3, 2]


class TestMatchFilters:
    """Tests for filter parsing and the wildcard."""

    def test_defaults_are_any(self):
        filters = MatchFilters()
        assert filters.subject == ANY
        assert filters.role == ANY
        assert filters.study_method == ANY
        assert filters.learning_style == ANY

    def test_query_strings_coerce(self):
        filters = MatchFilters.model_validate(
            {"subject": "3", "role": "Can Help", "studyMethod": "any", "learningStyle": "Visual"}
        )
        assert filters.subject == 3
        assert filters.role == SubjectRole.CAN_HELP
        assert filters.study_method == ANY
        assert filters.learning_style == LearningStyle.VISUAL

    def test_unknown_enum_value_rejected(self):
        with pytest.raises(ValidationError):
            MatchFilters.model_validate({"studyMethod": "Cramming"})

    def test_effective_role_drops_dangling_role(self):
        assert MatchFilters(role=SubjectRole.CAN_HELP).effective_role == ANY
        assert MatchFilters(subject=1, role=SubjectRole.CAN_HELP).effective_role == SubjectRole.CAN_HELP

    def test_cache_token_ignores_dangling_role(self):
        assert MatchFilters(role=SubjectRole.NEEDS_HELP).cache_token() == ALL_ANY.cache_token()
        assert MatchFilters(subject=2).cache_token() != ALL_ANY.cache_token()


class TestScoreCandidate:
    """Tests for the score stage."""

    def test_scenario_maths_helper_scores_15(self, matching_service, requester, maths_helper):
        breakdown = matching_service.score_candidate(requester, maths_helper)
        assert breakdown.can_help_you == 10
        assert breakdown.you_can_help == 0
        assert breakdown.shared_availability == 4
        assert breakdown.shared_methods == 1
        assert breakdown.total == 15

    def test_scenario_physics_learner_scores_5(self, matching_service, requester, physics_learner):
        breakdown = matching_service.score_candidate(requester, physics_learner)
        assert breakdown.total == 5
        assert breakdown.you_can_help == 5

    def test_requester_without_interests(self, matching_service, maths_helper):
        blank = make_user(9, availability=["Evenings"])
        breakdown = matching_service.score_candidate(blank, maths_helper)
        assert breakdown.can_help_you == 0
        assert breakdown.you_can_help == 0
        assert breakdown.total == 2

    def test_each_overlapping_subject_adds_points(self, matching_service):
        needy = make_user(1, interests=[(1, SubjectRole.NEEDS_HELP), (2, SubjectRole.NEEDS_HELP)])
        tutor = make_user(2, interests=[(1, SubjectRole.CAN_HELP), (2, SubjectRole.CAN_HELP)])
        assert matching_service.score_candidate(needy, tutor).can_help_you == 20

    def test_score_is_non_negative_and_idempotent(self, matching_service, demo_users):
        for r in demo_users:
            for c in demo_users:
                first = matching_service.score_candidate(r, c)
                second = matching_service.score_candidate(r, c)
                assert first.total >= 0
                assert first == second

    def test_monotonic_in_interests_slots_and_methods(self, matching_service, requester):
        base = make_user(5, interests=[(3, SubjectRole.CAN_HELP)], availability=["Evenings"])
        base_score = matching_service.score_candidate(requester, base).total

        more_interest = make_user(
            5,
            interests=[(3, SubjectRole.CAN_HELP), (1, SubjectRole.NEEDS_HELP)],
            availability=["Evenings"],
        )
        more_slots = make_user(
            5, interests=[(3, SubjectRole.CAN_HELP)], availability=["Evenings", "Mornings"]
        )
        more_methods = make_user(
            5,
            interests=[(3, SubjectRole.CAN_HELP)],
            availability=["Evenings"],
            methods=[StudyMethod.DISCUSSION],
        )
        for richer in (more_interest, more_slots, more_methods):
            assert matching_service.score_candidate(requester, richer).total >= base_score

    def test_custom_point_values(self, point_settings, requester, maths_helper):
        point_settings.PARTNER_CAN_HELP_POINTS = 100
        with patch("studysphere.services.matching_service.get_settings") as mock:
            mock.return_value = point_settings
            service = MatchingService()
        assert service.score_candidate(requester, maths_helper).total == 105


class TestRankCandidates:
    """Tests for ranking and the best-match highlight."""

    def test_scenario_order(self, matching_service, requester, maths_helper, physics_learner):
        ranked = matching_service.rank_candidates(requester, [physics_learner, maths_helper])
        assert [rc.user.id for rc in ranked] == [maths_helper.id, physics_learner.id]
        assert [rc.score for rc in ranked] == [15, 5]

    def test_empty_pool(self, matching_service, requester):
        assert matching_service.rank_candidates(requester, []) == []
        assert matching_service.rank_candidates(requester, [requester]) == []

    def test_ties_resolve_to_lower_id(self, matching_service, requester):
        a = make_user(7, availability=["Evenings"])
        b = make_user(5, availability=["Weekends"])
        ranked = matching_service.rank_candidates(requester, [a, b])
        assert [rc.user.id for rc in ranked] == [5, 7]

    def test_resorting_is_a_no_op(self, matching_service, demo_users):
        ranked = matching_service.rank_candidates(demo_users[0], demo_users)
        resorted = sorted(ranked, key=lambda rc: (-rc.score, rc.user.id))
        assert resorted == ranked

    def test_demo_ranking_for_aisha(self, matching_service, demo_users):
        ranked = matching_service.rank_candidates(demo_users[0], demo_users)
        assert [(rc.user.name, rc.score) for rc in ranked] == [
            ("Vikram Singh", 15),
            ("Priya Patel", 8),
            ("Rohan Verma", 3),
        ]

    def test_highlight_names_first_needed_subject(self, matching_service, demo_users):
        ranked = matching_service.rank_candidates(demo_users[0], demo_users)
        vikram = ranked[0]
        assert vikram.best_match_subject_id == 3
        assert vikram.highlight == "Great match! Can help with Maths."
        assert ranked[1].highlight is None

    def test_best_match_follows_requester_order(self, matching_service):
        needy = make_user(1, interests=[(5, SubjectRole.NEEDS_HELP), (2, SubjectRole.NEEDS_HELP)])
        tutor = make_user(2, interests=[(2, SubjectRole.CAN_HELP), (5, SubjectRole.CAN_HELP)])
        assert MatchingService.best_match_subject(needy, tutor) == 5


class TestFindPartners:
    """Tests for the cached, store-backed search."""

    @pytest.mark.asyncio
    async def test_computes_and_caches(self, point_settings, demo_users, mock_cache, mock_db_session):
        profile_service = AsyncMock()
        profile_service.load_roster.return_value = demo_users
        with patch("studysphere.services.matching_service.get_settings") as mock:
            mock.return_value = point_settings
            service = MatchingService(profile_service=profile_service, cache=mock_cache)

        response = await service.find_partners(1, ALL_ANY, mock_db_session)

        assert response.cached is False
        assert [rc.user.id for rc in response.results] == [4, 3, 2]
        mock_cache.set_ranking.assert_awaited_once()
        args = mock_cache.set_ranking.await_args.args
        assert args[:3] == (1, 0, ALL_ANY.cache_token())

    @pytest.mark.asyncio
    async def test_cache_hit_skips_roster(self, point_settings, demo_users, mock_cache, mock_db_session):
        with patch("studysphere.services.matching_service.get_settings") as mock:
            mock.return_value = point_settings
            computed = MatchingService().rank_candidates(demo_users[0], demo_users)

        mock_cache.roster_version.return_value = 7
        mock_cache.get_ranking.return_value = [
            rc.model_dump(mode="json", by_alias=True) for rc in computed
        ]
        profile_service = AsyncMock()
        with patch("studysphere.services.matching_service.get_settings") as mock:
            mock.return_value = point_settings
            service = MatchingService(profile_service=profile_service, cache=mock_cache)

        response = await service.find_partners(1, ALL_ANY, mock_db_session)

        assert response.cached is True
        assert response.roster_version == 7
        assert response.results == computed
        assert all(isinstance(rc, RankedCandidate) for rc in response.results)
        profile_service.load_roster.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_requester(self, point_settings, demo_users, mock_db_session):
        profile_service = AsyncMock()
        profile_service.load_roster.return_value = demo_users
        with patch("studysphere.services.matching_service.get_settings") as mock:
            mock.return_value = point_settings
            service = MatchingService(profile_service=profile_service)

        with pytest.raises(NotFoundError):
            await service.find_partners(99, ALL_ANY, mock_db_session)
