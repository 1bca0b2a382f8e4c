"""Unit tests for the native JSON codec (the lossless format)."""

import json
from fractions import Fraction

import pytest

from shakuscore_backend.domain.errors import StructuralError, ValidationError
from shakuscore_backend.domain.native_json import parse_native_json, serialize_native_json
from shakuscore_backend.domain.score import ScoreModel, ScoreNote


def _sample_score() -> ScoreModel:
    return ScoreModel(
        title="赤とんぼ",
        composer="山田耕筰",
        tempo="72",
        key="D",
        style="tozan",
        notes=(
            ScoreNote.sounding("ro", 0),
            ScoreNote.sounding("tsu", 0, alteration="half"),
            ScoreNote.sounding("tsu", 1, Fraction(1, 2), alteration="quarter"),
            ScoreNote.sounding("ro", 0, Fraction(3, 2), alteration="whole", dotted=True),
            ScoreNote.silent(2, dotted=True),
            ScoreNote.sounding("hi", 0, Fraction(1, 3)),
            ScoreNote.sounding("chi", 2, 4),
        ),
    )


def test_round_trip_is_exact() -> None:
    score = _sample_score()
    assert parse_native_json(serialize_native_json(score)) == score


def test_serialize_uses_meri_flags() -> None:
    data = json.loads(serialize_native_json(_sample_score()))
    notes = data["notes"]
    assert notes[0] == {"pitch": {"step": "ro", "octave": 0}, "duration": 1}
    assert notes[1]["meri"] is True
    assert notes[2]["chu_meri"] is True
    assert notes[3]["dai_meri"] is True
    assert notes[4] == {"rest": True, "duration": 2, "dotted": True}


def test_serialize_duration_encodings() -> None:
    notes = json.loads(serialize_native_json(_sample_score()))["notes"]
    assert notes[2]["duration"] == 0.5
    assert notes[3]["duration"] == 1.5
    assert notes[5]["duration"] == "1/3"
    assert isinstance(notes[6]["duration"], int)


def test_serialize_keeps_non_ascii() -> None:
    text = serialize_native_json(_sample_score())
    assert "赤とんぼ" in text


def test_serialize_omits_absent_optional_fields() -> None:
    score = ScoreModel(title="Plain", notes=(ScoreNote.sounding("ro", 0),))
    data = json.loads(serialize_native_json(score))
    assert set(data) == {"title", "style", "notes"}


def test_parse_missing_title_uses_placeholder() -> None:
    score = parse_native_json('{"notes": [{"pitch": {"step": "ro", "octave": 0}, "duration": 1}]}')
    assert score.title == "Untitled"
    assert score.style == "kinko"


def test_parse_numeric_tempo_becomes_string() -> None:
    score = parse_native_json('{"title": "T", "tempo": 90, "notes": [{"rest": true, "duration": 1}]}')
    assert score.tempo == "90"


def test_parse_float_duration_is_exact_fraction() -> None:
    score = parse_native_json('{"title": "T", "notes": [{"pitch": {"step": "ro", "octave": 0}, "duration": 0.25}]}')
    assert score.notes[0].duration == Fraction(1, 4)


def test_parse_rejects_contradictory_meri_flags() -> None:
    text = json.dumps(
        {
            "title": "T",
            "notes": [
                {"pitch": {"step": "ro", "octave": 0}, "duration": 1},
                {"pitch": {"step": "ro", "octave": 0}, "duration": 1, "meri": True, "dai_meri": True},
            ],
        }
    )
    with pytest.raises(ValidationError) as exc:
        parse_native_json(text)
    assert exc.value.note_index == 1


def test_parse_invalid_json_is_structural() -> None:
    with pytest.raises(StructuralError):
        parse_native_json("{not json")


def test_parse_top_level_array_is_structural() -> None:
    with pytest.raises(StructuralError):
        parse_native_json("[]")


def test_parse_missing_notes_is_structural() -> None:
    with pytest.raises(StructuralError, match="notes"):
        parse_native_json('{"title": "T"}')


def test_parse_empty_notes_is_structural() -> None:
    with pytest.raises(StructuralError):
        parse_native_json('{"title": "T", "notes": []}')


def test_parse_missing_duration_reports_note_index() -> None:
    text = '{"title": "T", "notes": [{"rest": true, "duration": 1}, {"rest": true}]}'
    with pytest.raises(StructuralError) as exc:
        parse_native_json(text)
    assert exc.value.note_index == 1


def test_parse_octave_out_of_range_is_validation_error() -> None:
    text = '{"title": "T", "notes": [{"pitch": {"step": "ro", "octave": 3}, "duration": 1}]}'
    with pytest.raises(ValidationError) as exc:
        parse_native_json(text)
    assert exc.value.note_index == 0


def test_parse_zero_duration_is_validation_error() -> None:
    text = '{"title": "T", "notes": [{"pitch": {"step": "ro", "octave": 0}, "duration": 0}]}'
    with pytest.raises(ValidationError):
        parse_native_json(text)


def test_parse_note_without_pitch_or_rest_is_validation_error() -> None:
    with pytest.raises(ValidationError):
        parse_native_json('{"title": "T", "notes": [{"duration": 1}]}')


@pytest.mark.parametrize("duration", [0.1, "1/2", "2/3", 0.75])
def test_round_trip_is_exact_for_float_and_ratio_durations(duration) -> None:
    score = ScoreModel(
        title="T",
        notes=(ScoreNote.sounding("ro", 0, duration), ScoreNote.silent(duration, dotted=True)),
    )
    assert parse_native_json(serialize_native_json(score)) == score
