"""
Unit tests for the plan catalogue and plan ordering.
"""

from aisaas.domain.plans import (
    UNLIMITED,
    PlanName,
    allows_model,
    get_ai_request_limit,
    get_all_plans,
    get_plan_features,
    get_upgrade_plan,
    highest_plan,
    parse_plan_name,
)


class TestPlanOrdering:
    """Tests for highest_plan and upgrade paths."""

    def test_highest_plan_picks_most_generous(self):
        assert highest_plan([PlanName.FREE, PlanName.STARTUP, PlanName.PRO]) == PlanName.STARTUP

    def test_highest_plan_defaults_to_free(self):
        assert highest_plan([]) == PlanName.FREE

    def test_upgrade_path(self):
        assert get_upgrade_plan(PlanName.FREE) == PlanName.PRO
        assert get_upgrade_plan(PlanName.PRO) == PlanName.STARTUP
        assert get_upgrade_plan(PlanName.STARTUP) is None


class TestParsePlanName:

    def test_known_names_case_insensitive(self):
        assert parse_plan_name("pro") == PlanName.PRO
        assert parse_plan_name(" Startup ") == PlanName.STARTUP

    def test_unknown_or_empty_is_none(self):
        assert parse_plan_name("enterprise") is None
        assert parse_plan_name("") is None
        assert parse_plan_name(None) is None


class TestPlanFeatures:
    """Tests for the static feature bundles."""

    def test_ai_request_limits(self):
        assert get_ai_request_limit(PlanName.FREE) == 10
        assert get_ai_request_limit(PlanName.PRO) == 1000
        assert get_ai_request_limit(PlanName.STARTUP) == UNLIMITED

    def test_wildcard_grants_every_model(self):
        features = get_plan_features(PlanName.STARTUP)
        assert allows_model(features, "any-model-at-all")

    def test_free_plan_model_list(self):
        features = get_plan_features(PlanName.FREE)
        assert allows_model(features, "gpt-3.5-turbo")
        assert not allows_model(features, "gpt-4")

    def test_all_plans_cheapest_first(self):
        plans = get_all_plans()
        assert [p.id for p in plans] == [PlanName.FREE, PlanName.PRO, PlanName.STARTUP]
        assert [p.price for p in plans] == sorted(p.price for p in plans)
