"""Unit tests for modifier resolution (octave marks, meri marks, dots, duration lines)."""

from fractions import Fraction

import pytest

from shakuscore_backend.domain.modifiers import (
    AlterationMark,
    DurationDot,
    DurationLineRun,
    OctaveMark,
    duration_line_count,
    expected_register,
    resolve_modifiers,
)
from shakuscore_backend.domain.pitch_table import kinko_pitch_table
from shakuscore_backend.domain.score import ScoreNote
from shakuscore_backend.render_options import RenderOptions


def _line(decorated) -> DurationLineRun:
    (run,) = decorated.of_kind("duration_line_run")
    return run


@pytest.mark.parametrize(
    "duration, count",
    [
        (4, 0),
        (2, 0),
        (Fraction(3, 2), 1),
        (1, 1),
        (Fraction(3, 4), 2),
        (Fraction(1, 2), 2),
        (Fraction(1, 4), 3),
        (Fraction(1, 8), 4),
        (Fraction(1, 16), 4),
    ],
)
def test_duration_line_count(duration, count: int) -> None:
    assert duration_line_count(duration) == count


def test_expected_register_defaults_to_otsu() -> None:
    assert expected_register("chi", None, kinko_pitch_table()) == 0


def test_expected_register_picks_closest() -> None:
    table = kinko_pitch_table()
    # A5 (chi kan) → ro: D4=62, D5=74, D6=86 → 86 is nearest
    assert expected_register("ro", 81, table) == 2
    # C5 → ro: D5 is nearest
    assert expected_register("ro", 72, table) == 1


def test_first_note_in_otsu_has_no_octave_mark() -> None:
    (d,) = resolve_modifiers([ScoreNote.sounding("ro", 0)])
    assert not d.has_octave_mark


def test_first_note_outside_otsu_gets_octave_mark() -> None:
    (d,) = resolve_modifiers([ScoreNote.sounding("chi", 1)])
    (mark,) = d.of_kind("octave_mark")
    assert isinstance(mark, OctaveMark)
    assert mark.register == 1
    assert mark.anchor == "above"
    assert mark.stroke_count == 1


def test_closest_register_suppresses_mark() -> None:
    decorated = resolve_modifiers([ScoreNote.sounding("chi", 1), ScoreNote.sounding("ro", 2)])
    assert decorated[0].has_octave_mark
    assert not decorated[1].has_octave_mark


def test_unexpected_lower_register_gets_below_mark() -> None:
    decorated = resolve_modifiers([ScoreNote.sounding("ri", 0), ScoreNote.sounding("ro", 0)])
    (mark,) = decorated[1].of_kind("octave_mark")
    assert mark.register == 0
    assert mark.anchor == "below"


def test_rest_does_not_reset_register_context() -> None:
    decorated = resolve_modifiers([ScoreNote.sounding("ro", 1), ScoreNote.silent(), ScoreNote.sounding("ro", 1)])
    assert decorated[0].has_octave_mark
    assert [d.kind for d in decorated[1].decorations] == ["duration_line_run"]
    assert not decorated[2].has_octave_mark


def test_octave_marks_can_be_hidden() -> None:
    (d,) = resolve_modifiers([ScoreNote.sounding("chi", 1)], RenderOptions(show_octave_marks=False))
    assert not d.has_octave_mark


def test_alteration_mark_glyphs() -> None:
    decorated = resolve_modifiers(
        [
            ScoreNote.sounding("tsu", 0, alteration="half"),
            ScoreNote.sounding("tsu", 0, alteration="quarter"),
            ScoreNote.sounding("ro", 0, alteration="whole"),
        ]
    )
    glyphs = [d.of_kind("alteration_mark")[0].glyph for d in decorated]
    assert glyphs == ["メ", "中", "大"]
    mark = decorated[0].of_kind("alteration_mark")[0]
    assert isinstance(mark, AlterationMark)
    assert mark.anchor == "left"
    assert mark.level == "half"


def test_dot_is_independent_of_duration() -> None:
    decorated = resolve_modifiers([ScoreNote.sounding("ro", 0, 4, dotted=True), ScoreNote.silent(dotted=True)])
    for d in decorated:
        (dot,) = d.of_kind("duration_dot")
        assert isinstance(dot, DurationDot)
        assert d.has_extra_footprint
    assert not decorated[0].of_kind("duration_line_run")


def test_line_runs_connect_until_rest_or_unlined_note() -> None:
    half = Fraction(1, 2)
    decorated = resolve_modifiers(
        [
            ScoreNote.sounding("ro", 0, half),
            ScoreNote.sounding("tsu", 0, half),
            ScoreNote.silent(half),
            ScoreNote.sounding("re", 0, half),
            ScoreNote.sounding("chi", 0, 2),
        ]
    )
    assert _line(decorated[0]).is_terminal is False
    assert _line(decorated[1]).is_terminal is True
    assert _line(decorated[2]).is_terminal is True
    assert _line(decorated[3]).is_terminal is True
    assert not decorated[4].of_kind("duration_line_run")
    assert _line(decorated[0]).line_count == 2


def test_last_note_line_is_terminal() -> None:
    decorated = resolve_modifiers([ScoreNote.sounding("ro", 0), ScoreNote.sounding("ro", 0)])
    assert _line(decorated[0]).is_terminal is False
    assert _line(decorated[1]).is_terminal is True


def test_debug_labels() -> None:
    options = RenderOptions(show_debug_labels=True)
    decorated = resolve_modifiers(
        [
            ScoreNote.sounding("ri", 0),
            ScoreNote.sounding("ro", 0),
            ScoreNote.silent(),
            ScoreNote.sounding("tsu", 0, alteration="half"),
        ],
        options,
    )
    assert [d.debug_label for d in decorated] == ["1 ri", "2 ro (0)", "3 rest", "4 tsu meri"]


def test_debug_labels_are_off_by_default() -> None:
    (d,) = resolve_modifiers([ScoreNote.sounding("ro", 0)])
    assert d.debug_label is None


def test_resolution_is_deterministic() -> None:
    notes = [ScoreNote.sounding("ro", 0), ScoreNote.sounding("hi", 1, Fraction(1, 4), dotted=True)]
    assert resolve_modifiers(notes) == resolve_modifiers(notes)
