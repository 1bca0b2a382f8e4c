"""Unit tests for the parse / serialize / convert façade."""

import pytest

from shakuscore_backend.domain.errors import MappingError
from shakuscore_backend.domain.formats import (
    FORMATS,
    convert,
    convert_with_warnings,
    parse,
    parse_with_warnings,
    serialize,
)
from shakuscore_backend.domain.score import ScoreModel, ScoreNote
from shakuscore_backend.utils.paths import examples_dir


EXAMPLES = examples_dir()


def _read(name: str) -> str:
    return (EXAMPLES / name).read_text(encoding="utf-8")


def test_formats_are_listed() -> None:
    assert FORMATS == ("json", "musicxml", "abc")


@pytest.mark.parametrize("name, fmt", [("akatombo.json", "json"), ("tsuru_excerpt.abc", "abc")])
def test_parse_examples(name: str, fmt: str) -> None:
    score = parse(_read(name), fmt)
    assert score.notes


def test_unknown_format_is_rejected() -> None:
    with pytest.raises(ValueError, match="midi"):
        parse("{}", "midi")
    with pytest.raises(ValueError):
        serialize(ScoreModel(title="T", notes=(ScoreNote.silent(),)), "midi")


def test_same_format_convert_returns_input_unchanged() -> None:
    text = '{"title":"T","notes":[{"rest":true,"duration":1}],"extra":1}'
    assert convert(text, "json", "json") == text


def test_musicxml_warnings_survive_convert() -> None:
    text, warnings = convert_with_warnings(_read("out_of_range_input.musicxml"), "musicxml", "abc")
    assert len(warnings) == 1
    assert warnings[0].token == "C3"
    assert parse(text, "abc").title == "Range Check"


def test_parse_with_warnings_is_empty_for_strict_formats() -> None:
    assert parse_with_warnings(_read("tsuru_excerpt.abc"), "abc").warnings == ()


def test_abc_example_survives_json_cycle() -> None:
    source = _read("tsuru_excerpt.abc")
    back = convert(convert(source, "abc", "json"), "json", "abc")
    assert parse(back, "abc") == parse(source, "abc")


def test_abc_example_musicxml_cycle_keeps_fingerings_and_duration_classes() -> None:
    source = parse(_read("tsuru_excerpt.abc"), "abc")
    back = parse(convert(_read("tsuru_excerpt.abc"), "abc", "musicxml"), "musicxml")
    assert [(n.pitch, n.alteration, n.dotted) for n in back.notes] == [
        (n.pitch, n.alteration, n.dotted) for n in source.notes
    ]
    assert [n.duration for n in back.notes] == [max(n.duration, 1) for n in source.notes]
    assert (back.title, back.composer, back.tempo, back.key) == (source.title, source.composer, source.tempo, source.key)


def test_json_to_musicxml_keeps_every_fingering_in_range() -> None:
    score = parse(_read("akatombo.json"), "json")
    xml_score = parse(convert(_read("akatombo.json"), "json", "musicxml"), "musicxml")
    assert [n.pitch for n in xml_score.notes] == [n.pitch for n in score.notes]


def test_convert_propagates_mapping_error() -> None:
    text = serialize(ScoreModel(title="T", notes=(ScoreNote.sounding("hi", 0),)), "json")
    with pytest.raises(MappingError):
        convert(text, "json", "abc")
