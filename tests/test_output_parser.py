"""Tests for the output parser (code fences, list and record shapes)."""
import pytest

from app.services.exceptions import MalformedOutputError
from app.services.output_parser import parse_list, parse_record, strip_code_fences

OFFER_FIELDS = {"status": str, "emailSubject": str, "missingClientInfo": list}


def test_strip_code_fences_with_language_tag():
    raw = '```json\n["a", "b"]\n```'
    assert strip_code_fences(raw) == '["a", "b"]'


def test_strip_code_fences_without_fence_is_trim_only():
    assert strip_code_fences('  ["a"]  \n') == '["a"]'


def test_strip_code_fences_html_document():
    raw = "```html\n<!DOCTYPE html><html><body>Hi</body></html>\n```"
    assert strip_code_fences(raw) == "<!DOCTYPE html><html><body>Hi</body></html>"


def test_parse_list_fenced_array():
    assert parse_list('```json\n["Rush fee is +30%", "  50% deposit  "]\n```') == [
        "Rush fee is +30%",
        "50% deposit",
    ]


def test_parse_list_drops_blank_items():
    assert parse_list('["one", "", "   ", "two"]') == ["one", "two"]


def test_parse_list_empty_array_is_valid():
    assert parse_list("[]") == []


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "Here are the facts: Rush fee is +30%",
        '{"facts": ["a"]}',
        '["a", 3]',
        '["a", null]',
        '["unterminated"',
    ],
)
def test_parse_list_rejects_wrong_shapes(raw):
    with pytest.raises(MalformedOutputError):
        parse_list(raw)


def test_parse_list_does_not_extract_json_from_prose():
    raw = 'Sure! Here you go:\n["a", "b"]\nLet me know if you need more.'
    with pytest.raises(MalformedOutputError):
        parse_list(raw)


def test_parse_record_accepts_extra_fields():
    raw = '{"status": "ready", "emailSubject": "Hi", "missingClientInfo": [], "extra": 1}'
    record = parse_record(raw, OFFER_FIELDS)
    assert record["status"] == "ready"
    assert record["extra"] == 1


def test_parse_record_missing_field_names_it():
    raw = '{"status": "ready", "emailSubject": "Hi"}'
    with pytest.raises(MalformedOutputError) as exc_info:
        parse_record(raw, OFFER_FIELDS)
    assert "missingClientInfo" in str(exc_info.value)


def test_parse_record_wrong_field_type():
    raw = '{"status": "ready", "emailSubject": "Hi", "missingClientInfo": "Deadline?"}'
    with pytest.raises(MalformedOutputError):
        parse_record(raw, OFFER_FIELDS)


def test_parse_record_int_field_rejects_bool():
    with pytest.raises(MalformedOutputError):
        parse_record('{"count": true}', {"count": int})


def test_parse_record_rejects_array():
    with pytest.raises(MalformedOutputError):
        parse_record("[]", OFFER_FIELDS)


def test_malformed_error_keeps_raw_preview():
    raw = "not json " * 50
    with pytest.raises(MalformedOutputError) as exc_info:
        parse_list(raw)
    assert exc_info.value.raw_text == raw
    assert len(exc_info.value.preview) == 200
