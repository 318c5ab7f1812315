"""Tests for the interactive shadow session."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from shadowgen.config import DEFAULT_LIGHT, DEFAULT_SHADOW
from shadowgen.errors import ImageLoadError
from shadowgen.pipeline import ShadowPipeline
from shadowgen.session import ShadowSession
from shadowgen.types import LightModel, Position, PositionPreset, ShadowAppearance
from utils.image_io import load_raster

from tests.conftest import opaque_foreground, solid_background


@pytest.fixture
def session():
    with ShadowSession() as session:
        yield session


@pytest.fixture
def loaded_session(session):
    session.load_foreground(opaque_foreground(60, 40).pixels)
    session.load_background(solid_background(200, 150).pixels)
    return session


def test_load_foreground_derives_mask(session):
    pixels = opaque_foreground(20, 10).pixels
    pixels[:, :5, 3] = 0

    mask = session.load_foreground(pixels)

    assert session.mask is mask
    assert mask.data.shape == (10, 20)
    assert not mask.data[:, :5].any()
    assert (mask.data[:, 5:] == 255).all()


def test_failed_load_keeps_previous_inputs(loaded_session):
    foreground = loaded_session.foreground
    background = loaded_session.background

    with pytest.raises(ImageLoadError):
        loaded_session.load_foreground(b"not an image")
    with pytest.raises(ImageLoadError):
        loaded_session.load_background(b"")

    assert loaded_session.foreground is foreground
    assert loaded_session.background is background
    assert loaded_session.is_ready()


def test_generation_requires_loaded_inputs(session):
    assert not session.is_ready()
    with pytest.raises(ImageLoadError):
        session.generate(DEFAULT_LIGHT, DEFAULT_SHADOW)
    with pytest.raises(ImageLoadError):
        session.place(PositionPreset.BOTTOM_CENTER)


def test_place_bottom_center(loaded_session):
    position = loaded_session.place("bottom-center")

    assert position == Position(x=70, y=110)
    assert loaded_session.position == position


def test_request_is_a_snapshot(loaded_session):
    request = loaded_session.build_request(DEFAULT_LIGHT, DEFAULT_SHADOW)

    loaded_session.set_position(Position(10, 10))
    loaded_session.load_background(solid_background(50, 50).pixels)

    assert request.position == Position(0, 0)
    assert request.background.size == (200, 150)


def test_generate_publishes_latest(loaded_session):
    result = loaded_session.generate(DEFAULT_LIGHT, DEFAULT_SHADOW)

    assert loaded_session.latest is result
    assert result.composite.size == (200, 150)


def _gate_first_generation(monkeypatch, session):
    """Hold the first pipeline run until the returned event is set."""
    release = threading.Event()
    started = threading.Event()
    original = session.pipeline.generate

    def gated(request, timer=None):
        if not started.is_set():
            started.set()
            release.wait(timeout=30)
        return original(request, timer=timer)

    monkeypatch.setattr(session.pipeline, "generate", gated)
    return started, release


def test_stale_submission_is_never_published(monkeypatch, loaded_session):
    started, release = _gate_first_generation(monkeypatch, loaded_session)

    first = loaded_session.submit(
        LightModel(angle=0.0, elevation=30.0), ShadowAppearance(0.5, 5.0, 50.0)
    )
    assert started.wait(timeout=30)
    second = loaded_session.submit(
        LightModel(angle=180.0, elevation=60.0), ShadowAppearance(0.9, 0.0, 80.0)
    )
    assert loaded_session.latest is None

    release.set()
    stale = first.result(timeout=30)
    newest = second.result(timeout=30)

    assert loaded_session.latest is newest
    assert loaded_session.latest is not stale
    assert loaded_session.is_current(2)
    assert not loaded_session.is_current(1)


def test_sync_generate_overtakes_running_submission(monkeypatch, loaded_session):
    started, release = _gate_first_generation(monkeypatch, loaded_session)

    pending = loaded_session.submit(
        LightModel(angle=0.0, elevation=30.0), ShadowAppearance(0.5, 5.0, 50.0)
    )
    assert started.wait(timeout=30)
    direct = loaded_session.generate(DEFAULT_LIGHT, DEFAULT_SHADOW)
    assert loaded_session.latest is direct

    release.set()
    stale = pending.result(timeout=30)

    assert loaded_session.latest is direct
    assert loaded_session.latest is not stale


def test_executor_is_created_on_first_submit(loaded_session):
    loaded_session.generate(DEFAULT_LIGHT, DEFAULT_SHADOW)
    assert loaded_session._executor is None

    loaded_session.submit(DEFAULT_LIGHT, DEFAULT_SHADOW).result(timeout=30)
    assert loaded_session._executor is not None

    loaded_session.close()
    assert loaded_session._executor is None


def test_sessions_can_share_a_pipeline():
    pipeline = ShadowPipeline()
    with ShadowSession(pipeline=pipeline) as first, ShadowSession(pipeline=pipeline) as second:
        first.load_foreground(opaque_foreground(10, 10).pixels)
        first.load_background(solid_background(40, 40).pixels)
        second.load_foreground(opaque_foreground(20, 20).pixels)
        second.load_background(solid_background(80, 60).pixels)

        assert first.pipeline is second.pipeline
        assert first.generate(DEFAULT_LIGHT, DEFAULT_SHADOW).composite.size == (40, 40)
        assert second.generate(DEFAULT_LIGHT, DEFAULT_SHADOW).composite.size == (80, 60)


def test_depth_map_uses_red_channel(loaded_session):
    rgb = np.zeros((150, 200, 3), dtype=np.uint8)
    rgb[:, :, 0] = 200
    rgb[:, :, 1] = 10

    depth_map = loaded_session.load_depth_map(rgb)

    assert (depth_map.data == 200).all()
    assert loaded_session.build_request(DEFAULT_LIGHT, DEFAULT_SHADOW).depth_map is depth_map

    loaded_session.clear_depth_map()
    assert loaded_session.depth_map is None


def _half_far_depth(width: int, height: int) -> np.ndarray:
    """Left half far (255), right half near (0)."""
    depth = np.zeros((height, width), dtype=np.uint8)
    depth[:, :width // 2] = 255
    return depth


def _shadow_alpha(session):
    light = LightModel(angle=0.0, elevation=45.0)
    shadow = ShadowAppearance(contact_darkness=0.5, max_blur_radius=0.0, falloff_distance=50.0)
    return session.generate(light, shadow).shadow_only.alpha


def test_depth_map_follows_downscaled_background():
    with ShadowSession(max_image_size=50) as session:
        session.load_foreground(opaque_foreground(10, 10).pixels)
        session.load_background(solid_background(100, 100).pixels)
        session.set_position(Position(30, 20))
        plain = _shadow_alpha(session)

        depth_map = session.load_depth_map(_half_far_depth(100, 100))
        with_depth = _shadow_alpha(session)

    assert session.background.size == (50, 50)
    assert depth_map.data.shape == (50, 50)
    assert plain.any()
    # Shadow lies in background columns >= 30, the near half of the scene
    assert np.array_equal(plain, with_depth)


def test_depth_map_loaded_first_is_fitted_to_background():
    with ShadowSession(max_image_size=50) as session:
        session.load_depth_map(_half_far_depth(100, 100))
        assert session.depth_map.data.shape == (100, 100)

        session.load_foreground(opaque_foreground(10, 10).pixels)
        session.load_background(solid_background(100, 100).pixels)

        assert session.depth_map.data.shape == (50, 50)
        assert (session.depth_map.data[:, :25] == 255).all()
        assert not session.depth_map.data[:, 25:].any()

        session.load_background(solid_background(40, 30).pixels)
        assert session.depth_map.data.shape == (30, 40)

def test_export_all_writes_three_files(loaded_session, tmp_path):
    result = loaded_session.generate(DEFAULT_LIGHT, DEFAULT_SHADOW)

    written = loaded_session.export_all(result, tmp_path / "out")

    assert sorted(p.name for p in written.values()) == [
        "composite.png", "mask_debug.png", "shadow_only.png",
    ]
    for path in written.values():
        assert path.exists()

    shadow_only = load_raster(written["shadow_only"])
    assert np.array_equal(shadow_only.pixels, result.shadow_only.pixels)
