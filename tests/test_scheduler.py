"""Tests for tracker.workflow.scheduler module."""

import pytest

from tracker.workflow.scheduler import (
    diagnose_stall,
    eligible_features,
    select_next,
    unmet_dependencies,
)


class TestSelectNext:
    """Next-feature selection rules."""

    def test_dependency_gates_higher_priority(self, make_feature):
        a = make_feature("feature-001", priority="high")
        b = make_feature("feature-002", priority="critical", dependencies=["feature-001"])
        assert select_next([a, b]).id == "feature-001"

        a_done = make_feature("feature-001", priority="high", status="completed", passes=True)
        assert select_next([a_done, b]).id == "feature-002"

    def test_in_progress_wins(self, make_feature):
        features = [
            make_feature("feature-001", priority="critical"),
            make_feature("feature-002", priority="low", status="in_progress"),
        ]
        assert select_next(features).id == "feature-002"

    def test_first_in_progress_wins(self, make_feature):
        features = [
            make_feature("feature-001", status="in_progress", priority="low"),
            make_feature("feature-002", status="in_progress", priority="critical"),
        ]
        assert select_next(features).id == "feature-001"

    def test_priority_order(self, make_feature):
        features = [
            make_feature("feature-001", priority="low"),
            make_feature("feature-002", priority="medium"),
            make_feature("feature-003", priority="high"),
        ]
        assert select_next(features).id == "feature-003"

    def test_tie_goes_to_list_order(self, make_feature):
        features = [
            make_feature("feature-004", priority="high"),
            make_feature("feature-002", priority="high"),
        ]
        assert select_next(features).id == "feature-004"

    def test_blocked_and_passing_skipped(self, make_feature):
        features = [
            make_feature("feature-001", priority="critical", status="blocked"),
            make_feature("feature-002", priority="critical", passes=True),
            make_feature("feature-003", priority="low"),
        ]
        assert select_next(features).id == "feature-003"

    def test_missing_dependency_is_ineligible(self, make_feature):
        features = [make_feature("feature-001", dependencies=["feature-099"])]
        assert select_next(features) is None
        assert unmet_dependencies(features[0], features) == ["feature-099"]

    def test_empty(self):
        assert select_next([]) is None

    def test_eligible_keeps_list_order(self, make_feature):
        features = [
            make_feature("feature-001", priority="low"),
            make_feature("feature-002", status="blocked"),
            make_feature("feature-003", priority="high"),
        ]
        assert [f.id for f in eligible_features(features)] == ["feature-001", "feature-003"]


class TestDiagnoseStall:
    """Explaining an empty schedule."""

    def test_schedulable_is_none(self, make_feature):
        assert diagnose_stall([make_feature("feature-001")]) is None

    def test_all_complete(self, make_feature):
        report = diagnose_stall([make_feature("feature-001", passes=True, status="completed")])
        assert report.complete
        assert not report.deadlocked

    def test_deadlock_reasons(self, make_feature):
        features = [
            make_feature("feature-001", status="blocked"),
            make_feature("feature-002", dependencies=["feature-001"]),
            make_feature("feature-003", dependencies=["feature-404"]),
        ]
        report = diagnose_stall(features)
        assert report.deadlocked
        assert report.blocked == ["feature-001"]
        assert report.waiting_on == {"feature-002": ["feature-001"]}
        assert report.missing_dependencies == {"feature-003": ["feature-404"]}
