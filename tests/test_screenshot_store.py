"""Tests for the screenshot store."""

import json
from datetime import datetime, timezone

from uicapture.storage.screenshot_store import ScreenshotStore, make_timestamp


class TestNaming:
    """Tests for file naming."""

    def test_baseline_name(self, baseline_store):
        assert baseline_store.is_baseline
        assert baseline_store.filename("01-hero", "dark") == "01-hero-dark.png"

    def test_timestamped_name(self, timestamped_store):
        assert not timestamped_store.is_baseline
        assert timestamped_store.filename("01-hero", "light") == "01-hero-light-20240102-030405.png"

    def test_variant_name(self, timestamped_store):
        assert (
            timestamped_store.filename("01-hero", "light", variant="fallback")
            == "01-hero-light-fallback-20240102-030405.png"
        )

    def test_make_timestamp(self):
        now = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
        assert make_timestamp(now) == "20240506-070809"


class TestSave:
    """Tests for writing images and metadata."""

    def test_save_writes_bytes(self, baseline_store):
        path = baseline_store.save("hero", "light", b"png-bytes")
        assert path.read_bytes() == b"png-bytes"
        assert path.parent == baseline_store.output_dir

    def test_baseline_overwrites(self, baseline_store):
        baseline_store.save("hero", "light", b"old")
        path = baseline_store.save("hero", "light", b"new")
        assert path.read_bytes() == b"new"
        assert len(list(baseline_store.output_dir.glob("*.png"))) == 1

    def test_save_metadata_sidecar(self, baseline_store):
        image = baseline_store.save("hero", "light", b"png")
        meta_path = baseline_store.save_metadata(image, {"status": "success", "clip": None})
        assert meta_path.name == "hero-light.json"
        assert json.loads(meta_path.read_text()) == {"status": "success", "clip": None}

    def test_creates_output_dir(self, tmp_path):
        store = ScreenshotStore(tmp_path / "a" / "b")
        assert store.output_dir.is_dir()


class TestLookup:
    """Tests for baseline and latest-capture lookup."""

    def test_baseline_path(self, baseline_store):
        assert baseline_store.baseline_path("hero", "light") is None
        baseline_store.save("hero", "light", b"png")
        assert baseline_store.baseline_path("hero", "light").name == "hero-light.png"

    def test_latest_capture_picks_newest_timestamp(self, tmp_path):
        out = tmp_path / "shots"
        ScreenshotStore(out, timestamp="20240101-000000").save("hero", "light", b"a")
        ScreenshotStore(out, timestamp="20240301-120000").save("hero", "light", b"b")
        ScreenshotStore(out, timestamp="20240201-000000").save("hero", "light", b"c")
        ScreenshotStore(out).save("hero", "light", b"baseline")

        latest = ScreenshotStore(out).latest_capture("hero", "light")
        assert latest.name == "hero-light-20240301-120000.png"

    def test_latest_capture_ignores_variants_and_other_components(self, tmp_path):
        out = tmp_path / "shots"
        ScreenshotStore(out, timestamp="20240101-000000").save("hero", "light", b"a", variant="fallback")
        ScreenshotStore(out, timestamp="20240102-000000").save("hero-banner", "light", b"b")
        assert ScreenshotStore(out).latest_capture("hero", "light") is None

    def test_baseline_for_timestamped_capture(self, tmp_path):
        out = tmp_path / "shots"
        store = ScreenshotStore(out, timestamp="20240102-030405")
        current = store.save("hero", "light", b"new")
        assert store.baseline_for(current) is None

        ScreenshotStore(out).save("hero", "light", b"old")
        assert store.baseline_for(current).name == "hero-light.png"

    def test_baseline_for_fallback_variant(self, tmp_path):
        out = tmp_path / "shots"
        store = ScreenshotStore(out, timestamp="20240102-030405")
        current = store.save("hero", "dark", b"new", variant="fallback")
        ScreenshotStore(out).save("hero", "dark", b"old", variant="fallback")
        assert store.baseline_for(current).name == "hero-dark-fallback.png"

    def test_baseline_store_has_no_baseline_for(self, baseline_store):
        path = baseline_store.save("hero", "light", b"png")
        assert baseline_store.baseline_for(path) is None
