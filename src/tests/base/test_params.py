import math

import pytest

from videounique.base.exceptions import InvalidParameterError
from videounique.base.params import (
    DelayParams,
    EnableWindow,
    FilterOperation,
    OverlayParams,
    PassthroughParams,
    RotateParams,
    ScaleParams,
    SpeedParams,
    TempoParams,
    format_number,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (7.0, "7"),
        (0.0, "0"),
        (9.5, "9.5"),
        (1 / 1.01, "0.9900990099009901"),
        (12, "12"),
    ],
)
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_speed_params():
    assert SpeedParams(factor=0.5).to_args() == "0.5*PTS"


def test_tempo_params():
    assert TempoParams(factor=1.01).to_args() == "1.01"


def test_delay_params():
    assert DelayParams(offset_seconds=7.0).to_args() == "PTS+7/TB"


def test_overlay_params_centered_by_default():
    assert OverlayParams().to_args() == "x=(main_w-overlay_w)/2:y=(main_h-overlay_h)/2"


def test_overlay_params_with_window():
    params = OverlayParams(format="auto", enable=EnableWindow(start=0.0, end=2.0))

    assert params.to_args() == "x=(main_w-overlay_w)/2:y=(main_h-overlay_h)/2:format=auto:enable='between(t,0,2)'"


def test_scale_params():
    assert ScaleParams(width=360, height=360).to_args() == "360:360"


def test_rotate_params():
    assert RotateParams(angle_radians=math.pi / 2).to_args() == f"{math.pi / 2!r}:fillcolor=none"


def test_passthrough_has_no_args():
    assert PassthroughParams().to_args() == ""


@pytest.mark.parametrize(
    "build",
    [
        lambda: SpeedParams(factor=0),
        lambda: SpeedParams(factor=-1.0),
        lambda: SpeedParams(factor=float("nan")),
        lambda: TempoParams(factor=0),
        lambda: TempoParams(factor=float("inf")),
        lambda: DelayParams(offset_seconds=-1.0),
        lambda: EnableWindow(start=5.0, end=2.0),
        lambda: EnableWindow(start=-1.0, end=2.0),
        lambda: OverlayParams(format="bogus"),
        lambda: OverlayParams(x=""),
        lambda: ScaleParams(width=0, height=360),
        lambda: ScaleParams(width=360.0, height=360),
        lambda: RotateParams(angle_radians=float("nan")),
        lambda: RotateParams(angle_radians=1.0, fill_color=""),
    ],
)
def test_invalid_params_raise(build):
    with pytest.raises(InvalidParameterError):
        build()


@pytest.mark.parametrize(
    "operation, filter_name, params_type",
    [
        (FilterOperation.SPEED_ADJUST_VIDEO, "setpts", SpeedParams),
        (FilterOperation.SPEED_ADJUST_AUDIO, "atempo", TempoParams),
        (FilterOperation.DELAY, "setpts", DelayParams),
        (FilterOperation.COMPOSITE_OVERLAY, "overlay", OverlayParams),
        (FilterOperation.SCALE, "scale", ScaleParams),
        (FilterOperation.ROTATE, "rotate", RotateParams),
        (FilterOperation.PASSTHROUGH, "null", PassthroughParams),
    ],
)
def test_operation_schema(operation, filter_name, params_type):
    assert operation.filter_name == filter_name
    assert operation.params_type is params_type
