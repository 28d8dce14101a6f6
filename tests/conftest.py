"""Shared fixtures for tracker tests."""

from datetime import datetime, timezone

import pytest

from tracker.lib.config import load_tracker_config
from tracker.store.models import Feature, FeatureStatus, Priority
from tracker.workflow.coordinator import Tracker

T0 = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def config(tmp_path):
    """Config for an empty project dir, ignoring the caller's environment."""
    return load_tracker_config(tmp_path, environ={})


@pytest.fixture
def tracker(config):
    """Initialized tracker on a fresh workspace."""
    t = Tracker(config)
    t.initialize()
    return t


@pytest.fixture
def make_feature():
    """Factory for Feature objects with sensible defaults."""
    def _make(fid, priority="medium", status="pending", passes=False, dependencies=(), **kwargs):
        return Feature(
            id=fid,
            description=kwargs.pop("description", f"Feature {fid}"),
            category=kwargs.pop("category", "functional"),
            priority=Priority(priority),
            status=FeatureStatus(status),
            passes=passes,
            dependencies=list(dependencies),
            created_at=T0,
            updated_at=T0,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_doc():
    """Factory for a current-version feature list document."""
    def _make(features=(), **overrides):
        doc = {
            "projectName": "demo",
            "version": "2.0.0",
            "createdAt": "2026-01-15T09:00:00+00:00",
            "updatedAt": "2026-01-15T09:00:00+00:00",
            "nextNumber": len(features) + 1,
            "features": list(features),
        }
        doc.update(overrides)
        return doc
    return _make


@pytest.fixture
def feature_dict():
    """Factory for a current-version feature mapping."""
    def _make(fid, **overrides):
        data = {
            "id": fid,
            "description": f"Feature {fid}",
            "category": "functional",
            "priority": "medium",
            "status": "pending",
            "passes": False,
            "dependencies": [],
            "createdAt": "2026-01-15T09:00:00+00:00",
            "updatedAt": "2026-01-15T09:00:00+00:00",
        }
        data.update(overrides)
        return data
    return _make
