"""Tests for component registry models and loading."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from uicapture.models.capture_result import CaptureOutcome, RunSummary
from uicapture.models.component import (
    ComponentSpec,
    TabConfig,
    group_by_page,
    load_components,
    select_components,
)
from uicapture.models.page_state import PageVisualState


class TestComponentSpec:
    """Tests for ComponentSpec validation."""

    def test_defaults(self):
        spec = ComponentSpec(name="hero", selector=".hero")
        assert spec.page == "/"
        assert spec.padding == 40
        assert spec.min_height == 0
        assert spec.pause_animations is True
        assert spec.fallback_strategy == "none"
        assert spec.click_wait_ms == 1000

    def test_selector_optional_with_fallback(self):
        spec = ComponentSpec(name="footer", fallback_strategy="last-element")
        assert spec.selector is None

    def test_selector_required_without_fallback(self):
        with pytest.raises(ValidationError, match="needs a selector"):
            ComponentSpec(name="nothing")

    def test_unknown_fallback_strategy(self):
        with pytest.raises(ValidationError):
            ComponentSpec(name="x", selector=".x", fallback_strategy="guess")

    def test_short_name(self):
        assert ComponentSpec(name="03-framework-tabs", selector=".t").short_name == "framework-tabs"
        assert ComponentSpec(name="hero", selector=".h").short_name == "hero"

    def test_tab_config(self):
        spec = ComponentSpec(
            name="tabs",
            selector=".tabs",
            tab_config={"candidate_tab_names": ["react", "vue"], "verify_tab_name": "react"},
        )
        assert isinstance(spec.tab_config, TabConfig)
        assert spec.tab_config.max_retries == 3
        assert spec.tab_config.per_tab is False
        assert spec.capture_names == ["tabs"]

    def test_per_tab_capture_names(self):
        listed = ComponentSpec(
            name="04-frameworks",
            selector=".tabs",
            tab_config={"verify_tab_name": "react", "capture_tabs": ["React", "Remix"]},
        )
        discovered = ComponentSpec(
            name="04-frameworks",
            selector=".tabs",
            tab_config={
                "candidate_tab_names": ["react", "preact"],
                "verify_tab_name": "react",
                "capture_all_tabs": True,
            },
        )
        assert listed.tab_config.per_tab is True
        assert listed.capture_names == ["04-frameworks-react", "04-frameworks-remix"]
        assert discovered.capture_names == ["04-frameworks-react", "04-frameworks-preact"]

    def test_highlight_and_debug_defaults(self):
        spec = ComponentSpec(name="hero", selector=".hero")
        assert spec.diff_highlight_selectors == []
        assert spec.debug_html is False


class TestLoadComponents:
    """Tests for load_components."""

    def test_loads_wrapped_registry(self, tmp_path: Path):
        path = tmp_path / "components.json"
        path.write_text(json.dumps({"components": [
            {"name": "01-hero", "selector": ".hero"},
            {"name": "02-footer", "fallback_strategy": "last-element"},
        ]}))
        components = load_components(path)
        assert [c.name for c in components] == ["01-hero", "02-footer"]

    def test_loads_bare_list(self, tmp_path: Path):
        path = tmp_path / "components.json"
        path.write_text(json.dumps([{"name": "hero", "selector": ".hero"}]))
        assert len(load_components(path)) == 1

    def test_duplicate_names_rejected(self, tmp_path: Path):
        path = tmp_path / "components.json"
        path.write_text(json.dumps([
            {"name": "hero", "selector": ".hero"},
            {"name": "hero", "selector": ".hero-2"},
        ]))
        with pytest.raises(ValueError, match="Duplicate component name"):
            load_components(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_components(tmp_path / "missing.json")


class TestSelection:
    """Tests for select_components and group_by_page."""

    @pytest.fixture
    def registry(self) -> list[ComponentSpec]:
        return [
            ComponentSpec(name="01-hero", selector=".hero"),
            ComponentSpec(name="02-features", selector=".features"),
            ComponentSpec(name="03-intro", page="/docs", selector=".intro"),
        ]

    def test_empty_selection_means_all(self, registry):
        assert select_components(registry, []) == registry
        assert select_components(registry, None) == registry

    def test_matches_full_and_short_names(self, registry):
        selected = select_components(registry, ["features", "01-hero"])
        assert [c.name for c in selected] == ["02-features", "01-hero"]

    def test_unknown_names_ignored(self, registry, caplog):
        selected = select_components(registry, ["hero", "nope"])
        assert [c.name for c in selected] == ["01-hero"]
        assert "Unknown component: nope" in caplog.text

    def test_no_duplicates(self, registry):
        assert len(select_components(registry, ["hero", "01-hero"])) == 1

    def test_group_by_page_preserves_order(self, registry):
        groups = group_by_page(registry)
        assert list(groups) == ["/", "/docs"]
        assert [c.name for c in groups["/"]] == ["01-hero", "02-features"]


class TestRunSummary:
    """Tests for RunSummary counters."""

    def test_record_counts(self):
        summary = RunSummary(run_id="run_1")
        for status in ("success", "fallback", "failed", "error", "skipped"):
            summary.record(CaptureOutcome(component_name=f"c-{status}", theme="light", status=status))
        assert summary.total == 5
        assert summary.successful == 2
        assert summary.failed == 2
        assert summary.skipped == 1
        assert [o.status for o in summary.failures()] == ["failed", "error"]

    def test_component_results(self):
        summary = RunSummary(run_id="run_1")
        summary.record(CaptureOutcome(component_name="hero", theme="light", status="success"))
        summary.record(CaptureOutcome(component_name="hero", theme="dark", status="fallback"))
        assert summary.component_results == {"hero": {"light": "success", "dark": "fallback"}}


class TestPageVisualState:
    def test_reset(self):
        state = PageVisualState(theme="dark", animations_frozen=True, active_tab="react")
        state.reset()
        assert state == PageVisualState()
