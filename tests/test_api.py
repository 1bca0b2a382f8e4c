"""HTTP-level tests for the FastAPI app."""

from fastapi.testclient import TestClient

from shakuscore_backend.api.server import app
from shakuscore_backend.utils.paths import examples_dir


EXAMPLES = examples_dir()

client = TestClient(app)


def _read(name: str) -> str:
    return (EXAMPLES / name).read_text(encoding="utf-8")


def test_health() -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_formats() -> None:
    assert client.get("/formats").json() == ["json", "musicxml", "abc"]


def test_parse_returns_score_and_warnings() -> None:
    r = client.post("/parse", json={"text": _read("out_of_range_input.musicxml"), "format": "musicxml"})
    assert r.status_code == 200
    body = r.json()
    assert body["score"]["title"] == "Range Check"
    assert len(body["score"]["notes"]) == 4
    assert body["warnings"][0]["token"] == "C3"
    assert body["warnings"][0]["note_index"] == 1


def test_parse_error_is_structured_400() -> None:
    r = client.post("/parse", json={"text": "X:1\nT:No key\n", "format": "abc"})
    assert r.status_code == 400
    assert r.json()["detail"]["kind"] == "structural"


def test_mapping_error_reports_token() -> None:
    r = client.post("/parse", json={"text": "K:D\nD C,\n", "format": "abc"})
    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["kind"] == "mapping"
    assert detail["note_index"] == 1
    assert detail["token"] == "C,"


def test_unknown_format_is_rejected_by_request_validation() -> None:
    r = client.post("/parse", json={"text": "x", "format": "midi"})
    assert r.status_code == 422


def test_convert() -> None:
    r = client.post("/convert", json={"text": _read("tsuru_excerpt.abc"), "from_format": "abc", "to_format": "json"})
    assert r.status_code == 200
    body = r.json()
    assert body["warnings"] == []
    assert '"title": "Tsuru no Sugomori (excerpt)"' in body["text"]


def test_serialize() -> None:
    score = {"title": "T", "notes": [{"pitch": {"step": "ro", "octave": 0}, "duration": 1}]}
    r = client.post("/serialize", json={"score": score, "format": "abc"})
    assert r.status_code == 200
    assert r.json()["text"].endswith("K:D\n\nD\n")


def test_serialize_invalid_score_is_400() -> None:
    score = {"title": "T", "notes": [{"pitch": {"step": "ro", "octave": 5}, "duration": 1}]}
    r = client.post("/serialize", json={"score": score, "format": "json"})
    assert r.status_code == 400
    assert r.json()["detail"]["kind"] == "validation"


def test_layout() -> None:
    r = client.post(
        "/layout",
        json={"text": _read("tsuru_excerpt.abc"), "format": "abc", "width": 400, "height": 600},
    )
    assert r.status_code == 200
    body = r.json()
    layout = body["layout"]
    assert layout["capacity"] == 12
    assert layout["total_columns"] == 2
    assert [c["note_range"] for c in layout["columns"]] == [[0, 12], [12, 16]]
    assert len(body["notes"]) == 16
    assert body["notes"][10]["has_extra_footprint"] is True
    assert body["notes"][0]["kana"] == "ロ"
    assert body["notes"][5]["kana"] is None
    assert body["notes"][15]["register_name"] == "daikan"
    assert body["intrinsic_size"]["width"] > 0


def test_layout_with_options() -> None:
    r = client.post(
        "/layout",
        json={
            "text": _read("akatombo.json"),
            "width": 400,
            "height": 600,
            "options": {"notes_per_column": 4, "show_debug_labels": True},
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["layout"]["total_columns"] == 3
    assert body["notes"][0]["debug_label"] == "1 ro"


def test_layout_rejects_unknown_option() -> None:
    r = client.post("/layout", json={"text": _read("akatombo.json"), "width": 400, "height": 600, "options": {"x": 1}})
    assert r.status_code == 400


def test_layout_rejects_non_positive_viewport() -> None:
    r = client.post("/layout", json={"text": _read("akatombo.json"), "width": 0, "height": 600})
    assert r.status_code == 422
