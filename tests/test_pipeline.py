"""End-to-end tests for the shadow pipeline."""

from __future__ import annotations

import numpy as np
import pytest

import shadowgen.projection.projector as projector_module
from shadowgen import ResourceUnavailableError, generate
from shadowgen.config import BlurMode, EngineConfig
from shadowgen.mask import MaskExtractor
from shadowgen.pipeline import ShadowPipeline
from shadowgen.types import (
    GenerationRequest,
    LightModel,
    Position,
    RasterImage,
    ShadowAppearance,
    allocate_buffer,
)
from utils.timing import Timer

from tests.conftest import opaque_foreground, solid_background


def _request(foreground, background, light, shadow, position=Position()):
    return GenerationRequest(
        light=light,
        shadow=shadow,
        mask=MaskExtractor.extract_from_alpha(foreground),
        background=background,
        foreground=foreground,
        position=position,
    )


@pytest.mark.parametrize("fg_size", [(100, 100), (320, 260)], ids=["smaller", "larger"])
def test_outputs_are_sized_to_background(fg_size, white_background, scenario_light, scenario_shadow):
    foreground = opaque_foreground(*fg_size)
    result = ShadowPipeline().generate(
        _request(foreground, white_background, scenario_light, scenario_shadow)
    )

    for image in (result.composite, result.shadow_only, result.mask_debug):
        assert image.size == white_background.size


def test_generation_is_deterministic(square_foreground, white_background):
    light = LightModel(angle=210.0, elevation=35.0, intensity=0.8)
    shadow = ShadowAppearance(contact_darkness=0.7, max_blur_radius=12.0, falloff_distance=80.0)
    request = _request(square_foreground, white_background, light, shadow, Position(40, 30))

    first = ShadowPipeline().generate(request)
    second = ShadowPipeline().generate(request)

    assert np.array_equal(first.composite.pixels, second.composite.pixels)
    assert np.array_equal(first.shadow_only.pixels, second.shadow_only.pixels)
    assert np.array_equal(first.mask_debug.pixels, second.mask_debug.pixels)


def test_grazing_light_end_to_end(square_foreground, white_background):
    light = LightModel(angle=0.0, elevation=0.0, intensity=1.0)
    shadow = ShadowAppearance(contact_darkness=0.5, max_blur_radius=0.0, falloff_distance=50.0)

    result = ShadowPipeline().generate(_request(square_foreground, white_background, light, shadow))

    alpha = result.shadow_only.alpha
    assert np.unique(np.nonzero(alpha)[0]).tolist() == [99]
    assert (alpha[99, :100] == 128).all()
    assert not result.shadow_only.pixels[:, :, :3].any()


def test_composite_darkens_only_outside_foreground(square_foreground, white_background):
    light = LightModel(angle=90.0, elevation=45.0)
    shadow = ShadowAppearance(contact_darkness=0.5, max_blur_radius=0.0, falloff_distance=50.0)

    result = ShadowPipeline().generate(_request(square_foreground, white_background, light, shadow))

    composite = result.composite.pixels
    assert composite[50, 50, :3].tolist() == [200, 40, 40]
    assert composite[100, 50, 0] < 255
    assert composite[190, 190, :3].tolist() == [255, 255, 255]
    assert (composite[:, :, 3] == 255).all()


def test_zero_area_images(scenario_light, scenario_shadow):
    foreground = RasterImage.blank(0, 0)
    background = RasterImage.blank(0, 0)

    result = ShadowPipeline().generate(
        _request(foreground, background, scenario_light, scenario_shadow)
    )

    assert result.composite.size == (0, 0)
    assert result.shadow_only.size == (0, 0)
    assert result.mask_debug.size == (0, 0)


@pytest.mark.parametrize(
    "config",
    [
        EngineConfig.directional(),
        EngineConfig.perspective(blur_mode=BlurMode.DISTANCE_SCALED),
        EngineConfig.directional(blur_mode=BlurMode.DISTANCE_SCALED),
    ],
    ids=["directional", "perspective-distance", "directional-distance"],
)
def test_alternative_configurations(config, square_foreground, white_background, scenario_light):
    shadow = ShadowAppearance(contact_darkness=0.5, max_blur_radius=8.0, falloff_distance=60.0)
    result = ShadowPipeline(config).generate(
        _request(square_foreground, white_background, scenario_light, shadow, Position(20, 20))
    )

    assert result.shadow_only.alpha.any()
    assert result.composite.size == white_background.size


def test_allocation_failure_is_reported():
    with pytest.raises(ResourceUnavailableError):
        allocate_buffer(2 ** 40, 2 ** 40)


def test_pipeline_propagates_allocation_failure(
    monkeypatch, square_foreground, white_background, scenario_light, scenario_shadow
):
    def _fail(*args, **kwargs):
        raise ResourceUnavailableError("out of memory")

    monkeypatch.setattr(projector_module, "allocate_buffer", _fail)

    with pytest.raises(ResourceUnavailableError):
        ShadowPipeline().generate(
            _request(square_foreground, white_background, scenario_light, scenario_shadow)
        )


def test_module_level_generate(square_foreground, white_background, scenario_light, scenario_shadow):
    mask = MaskExtractor.extract_from_alpha(square_foreground)
    result = generate(
        scenario_light, scenario_shadow, mask, white_background, square_foreground,
        position=Position(50, 50),
    )

    assert result.composite.size == (200, 200)
    assert result.shadow_only.alpha[149].any()


def test_mask_debug_is_opaque_and_background_sized(white_background, scenario_light, scenario_shadow):
    foreground = opaque_foreground(30, 20)
    result = ShadowPipeline().generate(
        _request(foreground, white_background, scenario_light, scenario_shadow, Position(100, 100))
    )

    debug = result.mask_debug
    assert debug.size == (200, 200)
    assert (debug.alpha == 255).all()
    assert (debug.pixels[100:120, 100:130, :3] == 255).all()
    assert np.count_nonzero(debug.pixels[:, :, 0]) == 30 * 20


def test_mask_debug_is_clipped_at_background_edges(white_background, scenario_light, scenario_shadow):
    foreground = opaque_foreground(30, 20)
    result = ShadowPipeline().generate(
        _request(foreground, white_background, scenario_light, scenario_shadow, Position(-10, 190))
    )

    debug = result.mask_debug.pixels
    assert (debug[190:200, 0:20, 0] == 255).all()
    assert np.count_nonzero(debug[:, :, 0]) == 20 * 10


def test_timer_records_every_step(square_foreground, white_background, scenario_light, scenario_shadow):
    timer = Timer(label="test")
    ShadowPipeline().generate(
        _request(square_foreground, white_background, scenario_light, scenario_shadow),
        timer=timer,
    )

    assert set(timer.steps) == {"project", "blur", "composite", "mask_debug"}
    assert timer.get_summary()["total"] == pytest.approx(timer.get_total())
