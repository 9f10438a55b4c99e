"""Tag parsing and tag update tests."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from fsmeta.tags import (
    TagError,
    TagUpdate,
    TagValue,
    parse_bool_tag,
    parse_num_tag,
    parse_tag,
    parse_url_tag,
    validate_tag_key,
)


@pytest.mark.parametrize("name", ["", "a b", "a:b", "a,b", "a!b", "a\\b", "tab\there", "bell\x07"])
def test_validate_tag_key_rejects_invalid_names(name: str) -> None:
    with pytest.raises(TagError):
        validate_tag_key(name)


def test_validate_tag_key_accepts_unicode() -> None:
    assert validate_tag_key("café-2") == "café-2"


def test_parse_tag_without_value_is_presence_only() -> None:
    assert parse_tag("draft") == ("draft", None)
    assert parse_tag("draft:") == ("draft", None)


def test_parse_tag_sniffs_integer_then_bool_then_url_then_string() -> None:
    assert parse_tag("pages:-12") == ("pages", TagValue.number(-12))
    assert parse_tag("done:true") == ("done", TagValue.boolean(True))
    assert parse_tag("color:red") == ("color", TagValue.simple("red"))

    _, url = parse_tag("home:https://example.com/docs")
    assert url is not None
    assert url.kind == "Url"
    assert url.value == "https://example.com/docs"


def test_parse_tag_out_of_range_integer_falls_back_to_string() -> None:
    _, value = parse_tag("big:99999999999999999999")

    assert value == TagValue.simple("99999999999999999999")


def test_parse_tag_keeps_colons_in_value() -> None:
    name, value = parse_tag("time:12:30")

    assert name == "time"
    assert value is not None
    assert value.kind != "Number"


def test_parse_tag_rejects_empty_name() -> None:
    with pytest.raises(TagError, match="tag name is empty"):
        parse_tag(":value")


def test_typed_parsers_fail_on_mismatch() -> None:
    with pytest.raises(TagError, match="invalid num provided"):
        parse_num_tag("pages:many")
    with pytest.raises(TagError, match="invalid bool provided"):
        parse_bool_tag("done:yes")
    with pytest.raises(TagError, match="invalid url provided"):
        parse_url_tag("home:not a url")
    with pytest.raises(TagError, match="missing tag value"):
        parse_num_tag("pages")
    with pytest.raises(TagError, match="missing bool data"):
        parse_bool_tag("done:")


def test_typed_parsers_bypass_sniffing() -> None:
    assert parse_num_tag("n:7") == ("n", TagValue.number(7))
    assert parse_bool_tag("b:false") == ("b", TagValue.boolean(False))
    assert parse_url_tag("u:https://example.com/a")[1] == TagValue.url("https://example.com/a")


def test_tag_value_serializes_externally_tagged() -> None:
    assert TagValue.number(3).model_dump(mode="json") == {"Number": 3}
    assert TagValue.boolean(True).model_dump(mode="json") == {"Bool": True}
    assert TagValue.simple("x").model_dump(mode="json") == {"Simple": "x"}
    assert TagValue.model_validate({"Bool": False}) == TagValue.boolean(False)


@pytest.mark.parametrize("payload", [{"Number": "3"}, {"Number": True}, {"Bool": 1}, {"Other": 1}])
def test_tag_value_rejects_mismatched_payloads(payload: dict) -> None:
    with pytest.raises(ValidationError):
        TagValue.model_validate(payload)


def test_tag_value_str_renders_bool_lowercase() -> None:
    assert str(TagValue.boolean(True)) == "true"
    assert str(TagValue.number(5)) == "5"


def test_tag_update_rejects_conflicting_changes() -> None:
    with pytest.raises(ValidationError):
        TagUpdate(drop_all=True, add=[("a", None)])
    with pytest.raises(ValidationError):
        TagUpdate(replace=[("a", None)], drop=["b"])


def test_tag_update_apply() -> None:
    existing = {"b": None, "a": TagValue.number(1)}

    assert TagUpdate(drop_all=True).apply(existing) == {}
    assert TagUpdate(replace=[("z", None)]).apply(existing) == {"z": None}

    merged = TagUpdate(add=[("c", TagValue.simple("x")), ("a", None)], drop=["b"]).apply(existing)
    assert merged == {"a": None, "c": TagValue.simple("x")}
    assert list(merged) == ["a", "c"]

    empty = TagUpdate()
    assert empty.is_empty
    assert empty.apply(existing) is existing
