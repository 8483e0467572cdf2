"""
Unit tests for the dashboard aggregate and its models
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from dashboard_service.models import DashboardInput, DashboardVisibility, SavedDashboard, TimeRange
from dashboard_service.services.aggregate import create_dashboard, to_input, update_dashboard, utc_now
from dashboard_service.widgets.registry import create_widget


def widgets(count):
    return [
        create_widget("metric-card", f"Metric {i}", {"source": "traffic", "field": "sessions"}, widget_id=f"w{i}")
        for i in range(count)
    ]


class TestCreateAndUpdate:
    """Test cases for create/update"""

    def test_create_sets_identity_and_version(self, clock, id_generator):
        dashboard = create_dashboard(
            DashboardInput(name="Growth", widgets=widgets(3)),
            owner_id="user-1",
            clock=clock,
            id_generator=id_generator,
        )

        assert dashboard.id == "dashboard-1"
        assert dashboard.version == 1
        assert dashboard.owner_id == "user-1"
        assert dashboard.widget_count == 3
        assert dashboard.created_at == dashboard.updated_at

    def test_update_bumps_version_and_keeps_identity(self, clock, id_generator):
        original = create_dashboard(DashboardInput(name="Growth"), "user-1", clock, id_generator)
        updated = update_dashboard(
            original,
            DashboardInput(name="Growth v2", widgets=widgets(2), visibility=DashboardVisibility.TEAM),
            clock,
        )

        assert updated.version == original.version + 1
        assert updated.id == original.id
        assert updated.created_at == original.created_at
        assert updated.owner_id == original.owner_id
        assert updated.updated_at > original.updated_at
        assert updated.name == "Growth v2"
        assert updated.visibility == DashboardVisibility.TEAM
        assert updated.widget_count == 2

    def test_update_replaces_wholesale(self, clock, id_generator):
        original = create_dashboard(
            DashboardInput(name="Tagged", tags=["a", "b"], description="desc"), "user-1", clock, id_generator
        )
        updated = update_dashboard(original, DashboardInput(name="Tagged"), clock)

        assert updated.tags == []
        assert updated.description is None
        assert updated.default_time_range == TimeRange.LAST_30_DAYS

    def test_utc_now_is_aware_utc(self):
        value = utc_now()
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))

        assert value.endswith("Z")
        assert parsed.utcoffset() == timedelta(0)
        assert abs(datetime.now(timezone.utc) - parsed) < timedelta(minutes=1)

    def test_default_clock_stamps_dashboards(self):
        dashboard = create_dashboard(DashboardInput(name="Now"), "u")
        assert dashboard.created_at.endswith("Z")
        assert "+00:00" not in dashboard.created_at

    def test_to_input_round_trip(self, clock, id_generator):
        original = create_dashboard(DashboardInput(name="Copy me", widgets=widgets(1)), "user-1", clock, id_generator)
        again = update_dashboard(original, to_input(original), clock)
        assert again.widgets == original.widgets
        assert again.layout == original.layout


class TestModelInvariants:
    """Test cases for model-level validation"""

    def test_widget_count_is_derived(self):
        dashboard = SavedDashboard(
            id="d1",
            name="Derived",
            owner_id="u",
            created_at="2024-01-01T00:00:00Z",
            updated_at="2024-01-01T00:00:00Z",
            widget_count=99,
            widgets=widgets(2),
        )
        assert dashboard.widget_count == 2

    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    def test_invalid_names_rejected(self, name):
        with pytest.raises(ValidationError):
            DashboardInput(name=name)

    def test_name_and_description_trimmed(self):
        data = DashboardInput(name="  Sales  ", description="  Q1 ")
        assert data.name == "Sales"
        assert data.description == "Q1"

    def test_duplicate_widget_ids_rejected(self):
        duplicated = widgets(1) * 2
        with pytest.raises(ValidationError):
            DashboardInput(name="Dupes", widgets=duplicated)

    def test_unknown_source_rejected_at_construction(self):
        widget = widgets(1)[0].model_dump(by_alias=True)
        widget["config"]["dataBinding"]["source"] = "weather"
        with pytest.raises(ValidationError):
            DashboardInput(name="Bad", widgets=[widget])

    def test_unknown_widget_type_accepted_on_load(self):
        widget = widgets(1)[0].model_dump(by_alias=True)
        widget["config"]["type"] = "hologram"
        data = DashboardInput(name="Future", widgets=[widget])
        assert data.widgets[0].config.widget_type is None

    def test_camel_case_serialization(self, clock, id_generator):
        dashboard = create_dashboard(DashboardInput(name="Keys", widgets=widgets(1)), "u", clock, id_generator)
        data = dashboard.model_dump(by_alias=True, mode="json")

        assert {"ownerId", "widgetCount", "createdAt", "updatedAt", "defaultTimeRange"} <= set(data)
        assert "dataBinding" in data["widgets"][0]["config"]
        assert data["layout"]["columnsPerBreakpoint"]["sm"] == 6

    def test_to_meta(self, clock, id_generator):
        dashboard = create_dashboard(DashboardInput(name="Meta", widgets=widgets(2)), "u", clock, id_generator)
        meta = dashboard.to_meta()
        assert meta.widget_count == 2
        assert not hasattr(meta, "widgets")
