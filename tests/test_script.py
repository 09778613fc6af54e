import asyncio
import json

import pytest

from fakes import make_genai, script_json, text_response
from snapcomic.errors import EmptyResponseError, ParseError, TransportError
from snapcomic.script import build_script_prompt, generate_panel_script, parse_panel_script


@pytest.mark.parametrize("n", [1, 2, 4, 6, 9])
def test_panel_numbers_cover_one_to_n(n):
    entries = parse_panel_script(script_json(n), n)
    assert [e.panelNumber for e in entries] == list(range(1, n + 1))


def test_entries_are_sorted_by_panel_number():
    raw = json.dumps([
        {"panelNumber": 3, "imagePrompt": "end", "caption": "c"},
        {"panelNumber": 1, "imagePrompt": "start", "caption": "a"},
        {"panelNumber": 2, "imagePrompt": "middle", "caption": "b"},
    ])
    entries = parse_panel_script(raw, 3)
    assert [e.imagePrompt for e in entries] == ["start", "middle", "end"]


@pytest.mark.parametrize("raw", [
    "not json at all",
    '{"panelNumber": 1, "imagePrompt": "x", "caption": "y"}',
    '[{"panelNumber": 1, "imagePrompt": "x"}]',
    '[{"panelNumber": "one", "imagePrompt": "x", "caption": "y"}]',
])
def test_malformed_responses_raise_parse_error(raw):
    with pytest.raises(ParseError):
        parse_panel_script(raw, 1)


def test_duplicate_or_missing_panel_numbers_raise_parse_error():
    dup = json.dumps([{"panelNumber": 1, "imagePrompt": "x", "caption": "y"}] * 2)
    with pytest.raises(ParseError, match="1..2"):
        parse_panel_script(dup, 2)

    with pytest.raises(ParseError):
        parse_panel_script(script_json(3), 4)

    with pytest.raises(ParseError):
        parse_panel_script(script_json(2, start=2), 2)


def test_over_long_text_is_clipped_to_word_limits():
    raw = json.dumps([{"panelNumber": 1,
                       "imagePrompt": " ".join(["word"] * 60),
                       "caption": " ".join(["cap"] * 20)}])
    entry = parse_panel_script(raw, 1)[0]
    assert len(entry.imagePrompt.split()) == 50
    assert len(entry.caption.split()) == 15


def test_prompt_mentions_panel_count():
    prompt = build_script_prompt(5)
    assert "5-panel" in prompt
    assert "1 to 5" in prompt
    assert "{panel_count}" not in prompt


def test_generate_sends_image_and_instruction_in_one_call():
    g, models = make_genai([text_response(script_json(4))])
    entries = asyncio.run(generate_panel_script(g, b"jpeg-bytes", "image/jpeg", 4))

    assert len(entries) == 4
    assert len(models.calls) == 1
    call = models.calls[0]
    image_part, text_part = call["contents"]
    assert image_part.inline_data.data == b"jpeg-bytes"
    assert image_part.inline_data.mime_type == "image/jpeg"
    assert "4-panel" in text_part.text
    assert call["config"].response_mime_type == "application/json"
    assert call["model"] == g.config.text_model


def test_empty_text_raises_empty_response_error():
    g, _ = make_genai([text_response("")])
    with pytest.raises(EmptyResponseError):
        asyncio.run(generate_panel_script(g, b"img", "image/png", 4))


def test_sdk_failure_raises_transport_error():
    g, _ = make_genai([ConnectionError("connection reset")])
    with pytest.raises(TransportError, match="connection reset"):
        asyncio.run(generate_panel_script(g, b"img", "image/png", 4))


def test_panel_count_must_be_positive():
    g, models = make_genai([])
    with pytest.raises(ValueError):
        asyncio.run(generate_panel_script(g, b"img", "image/png", 0))
    assert models.calls == []
