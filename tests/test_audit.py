"""Tests for whole-index audits."""

from __future__ import annotations

import pytest

from mcp_doxysearch.audit import audit_index
from mcp_doxysearch.exceptions import IndexUnavailable, MalformedShard
from mcp_doxysearch.store import ShardStore

from .conftest import INDEX_FILES, CountingSource


@pytest.mark.asyncio
async def test_audit_reports_missing_and_malformed(store):
    report = await audit_index(store)

    assert report.status == "error"
    functions, classes = report.sections
    assert functions.buckets == 26
    assert functions.shards_loaded == 1
    assert functions.entries == 14
    assert functions.records == 28
    assert len(functions.missing) == 24
    assert "functions_19" in functions.missing
    assert classes.shards_loaded == 1
    assert classes.missing == []
    assert [error.shard_key for error in report.errors] == ["functions_14"]

    summary = report.to_dict()
    assert summary["status"] == "error"
    assert summary["errors"][0]["error_type"] == "MalformedShard"


@pytest.mark.asyncio
async def test_audit_leaves_shards_cached(store, source):
    await audit_index(store, ["classes"])
    await store.load_shard("classes_0")

    assert source.count("classes_0.js") == 1


@pytest.mark.asyncio
async def test_audit_of_complete_section(store):
    report = await audit_index(store, ["classes"])

    assert report.status == "ok"
    report.raise_for_errors()


@pytest.mark.asyncio
async def test_audit_incomplete_without_errors():
    files = {name: text for name, text in INDEX_FILES.items() if name != "functions_14.js"}
    report = await audit_index(ShardStore(CountingSource(files)), ["functions"])

    assert report.status == "incomplete"


@pytest.mark.asyncio
async def test_raise_for_errors(store):
    report = await audit_index(store)
    with pytest.raises(MalformedShard):
        report.raise_for_errors()

    report.errors.append(MalformedShard("functions_99", "truncated"))
    with pytest.raises(ExceptionGroup) as excinfo:
        report.raise_for_errors()
    assert len(excinfo.value.exceptions) == 2


@pytest.mark.asyncio
async def test_audit_without_catalogue():
    with pytest.raises(IndexUnavailable):
        await audit_index(ShardStore(CountingSource({})))
