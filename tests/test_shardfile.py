"""Tests for reading shard files and the index catalogue."""

from __future__ import annotations

import pytest

from mcp_doxysearch.exceptions import MalformedShard
from mcp_doxysearch.shardfile import (
    LiteralSyntaxError,
    parse_manifest,
    parse_shard,
    read_literals,
)

from .conftest import FUNCTIONS_T_SHARD, SEARCHDATA, TIFF_ANCHORS, TIMER_ANCHORS


def test_parse_generated_shard() -> None:
    shard = parse_shard("functions_13", FUNCTIONS_T_SHARD)

    keys = [entry.key for entry in shard.entries]
    assert keys == sorted(keys)
    assert len(shard) == 14
    assert shard.record_count == 28

    timer = next(entry for entry in shard.entries if entry.key == "timer_4")
    assert timer.display_label == "Timer"
    assert timer.term == "timer"
    assert timer.serial == 4
    assert [record.anchor for record in timer.records] == TIMER_ANCHORS
    assert all(
        record.target_url == "../class_biometric_evaluation_1_1_time_1_1_timer.html"
        for record in timer.records
    )
    assert {record.qualified_scope for record in timer.records} == {
        "BiometricEvaluation::Time::Timer"
    }


def test_parse_keeps_tooltips_verbatim() -> None:
    shard = parse_shard("functions_13", FUNCTIONS_T_SHARD)
    tiff = next(entry for entry in shard.entries if entry.term == "tiff")

    assert [record.anchor for record in tiff.records] == TIFF_ANCHORS
    assert "&amp;identifier=&quot;&quot;" in tiff.records[0].tooltip
    assert tiff.records[0].qualified_scope == "BiometricEvaluation::Image::TIFF"


def test_parse_file_scope_record_has_no_scope() -> None:
    shard = parse_shard("functions_13", FUNCTIONS_T_SHARD)
    to_string = next(entry for entry in shard.entries if entry.term == "to_5fstring")

    assert len(to_string.records) == 7
    last = to_string.records[-1]
    assert last.qualified_scope is None
    assert last.target_url == "../be__memory__autoarrayutility_8h.html"
    assert last.is_local is True


def test_parse_structured_layout() -> None:
    text = """
    [
      ["widget", ["Widget", [
        ["../class_widget.html", "a1", "ui::Widget::Widget()", "ui::Widget"],
        ["../class_widget.html", "a2", "ui::Widget::Widget(int)"]
      ]]],
      ["button", ["Button", [["../class_button.html", "", "ui::Button", null]]]]
    ]
    """
    shard = parse_shard("classes_1", text)

    assert [entry.key for entry in shard.entries] == ["button", "widget"]
    widget = shard.entries[1]
    assert widget.serial == 0
    assert [record.qualified_scope for record in widget.records] == [
        "ui::Widget",
        "ui::Widget",
    ]
    assert shard.entries[0].records[0].qualified_scope is None
    assert shard.entries[0].records[0].href == "../class_button.html"


def test_read_literals_handles_escapes_and_comments() -> None:
    values = read_literals(
        """
        // generated file
        var a = ['it\\'s', "tab\\there", '\\u00e9'];
        let b = {1: true, 'two': null,};
        """
    )
    assert values["a"] == ["it's", "tab\there", "é"]
    assert values["b"] == {"1": True, "two": None}


@pytest.mark.parametrize(
    "text",
    [
        "var searchData = 'not a list';",
        "var other = [];",
        "var searchData = [['lonely']];",
        "var searchData = [['unlink_0', ['unlink']]];",
        "var searchData = [['a_0', ['a', ['../a.html', 'x']]]];",
        "var searchData = [['a_0', ['a', ['', 1, 'scope']]]];",
        "var searchData = [['a_0', ['a', ['../a.html#x', 1, 'A']]], ['a_0', ['a', ['../b.html#y', 1, 'B']]]];",
        "var searchData = [['a_0', ['a', ['../a.html#x', 1, 'A']]]",
        "var searchData = @;",
    ],
)
def test_parse_shard_rejects_malformed_input(text: str) -> None:
    with pytest.raises(MalformedShard) as excinfo:
        parse_shard("functions_0", text)
    assert excinfo.value.shard_key == "functions_0"
    assert excinfo.value.details["shard_key"] == "functions_0"


def test_parse_manifest() -> None:
    manifest = parse_manifest(SEARCHDATA)

    assert manifest.section_names() == ["functions", "classes"]
    functions = manifest.section("functions")
    assert functions is not None
    assert functions.label == "Functions"
    assert functions.buckets[19] == "t"
    assert functions.candidate_buckets("tim") == [19]
    assert manifest.section() is functions
    assert manifest.section("variables") is None


@pytest.mark.parametrize(
    ("position", "expected"),
    [(0, "functions_0"), (9, "functions_9"), (10, "functions_a"), (19, "functions_13"), (25, "functions_19")],
)
def test_shard_keys_use_hex_positions(position: int, expected: str) -> None:
    functions = parse_manifest(SEARCHDATA).section("functions")

    assert functions is not None
    assert functions.shard_key(position) == expected
    assert functions.shard_keys()[position] == expected


def test_parse_manifest_with_prefix_buckets() -> None:
    manifest = parse_manifest(
        """
        var indexSectionsWithContent = {0: ["Ta", "ti", "to"]};
        var indexSectionNames = {0: "all"};
        """
    )
    section = manifest.section("all")
    assert section is not None
    assert section.buckets == ("ta", "ti", "to")
    assert section.label == "all"
    assert section.candidate_buckets("tim") == [1]
    assert section.candidate_buckets("t") == [0, 1, 2]
    assert section.candidate_buckets("x") == []


def test_parse_manifest_requires_section_tables() -> None:
    with pytest.raises(LiteralSyntaxError):
        parse_manifest("var indexSectionNames = {0: 'all'};")


def test_parse_key_ending_in_escape_without_serial() -> None:
    shard = parse_shard(
        "functions_e",
        """
        var searchData=[
          ['operator_28_29',['operator()',['../class_functor.html#a1',1,'Functor::operator()(int x)']]],
          ['operator_3d_3d',['operator==',['../class_functor.html#a2',1,'Functor::operator==(const Functor &amp;)']]]
        ];
        """,
    )

    entries = {entry.key: entry for entry in shard.entries}
    call = entries["operator_28_29"]
    assert call.term == "operator_28_29"
    assert call.serial == 0
    assert entries["operator_3d_3d"].term == "operator_3d_3d"
    assert entries["operator_3d_3d"].serial == 1
    assert call.records[0].qualified_scope == "Functor"
