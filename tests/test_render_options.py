"""Unit tests for RenderOptions defaults and partial merges."""

import pytest

from shakuscore_backend.render_options import RenderOptions


def test_defaults() -> None:
    options = RenderOptions()
    assert options.show_octave_marks is True
    assert options.show_debug_labels is False
    assert options.notes_per_column is None
    assert options.note_vertical_spacing == 44
    assert options.octave_mark.font_size == 12
    assert options.alteration_mark.font_size == 14


def test_layout_options_mapping() -> None:
    layout = RenderOptions(note_vertical_spacing=50, duration_dot_extra_spacing=6, notes_per_column=3).layout_options()
    assert layout.note_spacing == 50
    assert layout.extra_spacing == 6
    assert layout.notes_per_column == 3
    assert layout.top_margin == 34


def test_from_dict_merges_over_defaults() -> None:
    options = RenderOptions.from_dict({"show_debug_labels": True, "octave_mark": {"font_size": 10}})
    assert options.show_debug_labels is True
    assert options.octave_mark.font_size == 10
    assert options.octave_mark.font_weight == 500
    assert options.column_width == 100


def test_from_dict_none_is_default() -> None:
    assert RenderOptions.from_dict(None) == RenderOptions()


def test_from_dict_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError, match="colour"):
        RenderOptions.from_dict({"colour": "red"})
    with pytest.raises(ValueError):
        RenderOptions.from_dict({"debug_label": {"size": 3}})


def test_to_dict_round_trip() -> None:
    options = RenderOptions.from_dict({"column_spacing": 20, "alteration_mark": {"font_size": 16}})
    assert RenderOptions.from_dict(options.to_dict()) == options


@pytest.mark.parametrize(
    "kwargs",
    [
        {"show_octave_marks": "yes"},
        {"notes_per_column": 0},
        {"column_width": 0},
        {"note_vertical_spacing": -1},
        {"top_margin": -5},
    ],
)
def test_invalid_values(kwargs) -> None:
    with pytest.raises(ValueError):
        RenderOptions(**kwargs)
