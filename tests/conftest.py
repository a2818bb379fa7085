"""
Shared fixtures for the Doxygen symbol search tests.

The ``functions`` shard for bucket ``t`` is a verbatim Doxygen 1.9 shard.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any
from unittest.mock import MagicMock

import pytest

from mcp_doxysearch.engine import QueryEngine
from mcp_doxysearch.monitoring import query_monitor
from mcp_doxysearch.session import QuerySession
from mcp_doxysearch.sources import MappingShardSource
from mcp_doxysearch.store import ShardStore

FUNCTIONS_T_SHARD = """\
var searchData=
[
  ['terminatejob_0',['TerminateJob',['../class_biometric_evaluation_1_1_m_p_i_1_1_terminate_job.html#a220eddd4512edf56bff2ebac8b202d24',1,'BiometricEvaluation::MPI::TerminateJob::TerminateJob()'],['../class_biometric_evaluation_1_1_m_p_i_1_1_terminate_job.html#a282fd7dbafb8c02571245f266c35c70f',1,'BiometricEvaluation::MPI::TerminateJob::TerminateJob(std::string info)']]],
  ['tiff_1',['TIFF',['../class_biometric_evaluation_1_1_image_1_1_t_i_f_f.html#a14b885972e5f650c741f03551b9a6c67',1,'BiometricEvaluation::Image::TIFF::TIFF(const uint8_t *data, const uint64_t size, const std::string &amp;identifier=&quot;&quot;, const statusCallback_t &amp;statusCallback=Image::defaultStatusCallback)'],['../class_biometric_evaluation_1_1_image_1_1_t_i_f_f.html#a02d65e92ad951088a490f1889959c0e1',1,'BiometricEvaluation::Image::TIFF::TIFF(const Memory::uint8Array &amp;data, const std::string &amp;identifier=&quot;&quot;, const statusCallback_t &amp;statusCallback=Image::defaultStatusCallback)']]],
  ['time_2',['time',['../class_biometric_evaluation_1_1_time_1_1_timer.html#acdab9e2f066125cccefae34df4c3960c',1,'BiometricEvaluation::Time::Timer']]],
  ['timedwait_3',['timedwait',['../class_biometric_evaluation_1_1_process_1_1_semaphore.html#aed6b17ea9043a46d03e5254e8bc3fe08',1,'BiometricEvaluation::Process::Semaphore']]],
  ['timer_4',['Timer',['../class_biometric_evaluation_1_1_time_1_1_timer.html#a289f39f22fc1913ec9a37d5b5d6e3d1a',1,'BiometricEvaluation::Time::Timer::Timer()'],['../class_biometric_evaluation_1_1_time_1_1_timer.html#a03fa25a44a27a07819e68d6436758571',1,'BiometricEvaluation::Time::Timer::Timer(const std::function&lt; void()&gt; &amp;func)']]],
  ['tlv_5',['TLV',['../class_biometric_evaluation_1_1_device_1_1_t_l_v.html#a9b8d5b247c9c9f1a73155ae8b424d3e6',1,'BiometricEvaluation::Device::TLV::TLV()'],['../class_biometric_evaluation_1_1_device_1_1_t_l_v.html#ab799742f306eda8627c2e2105b6bc03a',1,'BiometricEvaluation::Device::TLV::TLV(const Memory::uint8Array &amp;buf)'],['../class_biometric_evaluation_1_1_device_1_1_t_l_v.html#af61d983695ba8be3a523bc7063634399',1,'BiometricEvaluation::Device::TLV::TLV(Memory::IndexedBuffer &amp;ibuf)'],['../class_biometric_evaluation_1_1_device_1_1_t_l_v.html#ae76cbb2a246b43dfea9ad5058e69094c',1,'BiometricEvaluation::Device::TLV::TLV(const std::string &amp;filename)']]],
  ['to_5fstring_6',['to_string',['../namespace_biometric_evaluation_1_1_framework.html#a4d9dd623dbf0982f52b010d5ee49a2a8',1,'BiometricEvaluation::Framework::to_string()'],['../namespace_biometric_evaluation_1_1_image.html#abe2259fd3a850f396777bddd16dfcef9',1,'BiometricEvaluation::Image::to_string(const Coordinate &amp;c)'],['../namespace_biometric_evaluation_1_1_image.html#aba8655150416ed6df3582217d04dea15',1,'BiometricEvaluation::Image::to_string(const CoordinateSet &amp;coordinates)'],['../namespace_biometric_evaluation_1_1_image.html#a6f659d8c74adc1814f1d3bbd6da31823',1,'BiometricEvaluation::Image::to_string(const Size &amp;s)'],['../namespace_biometric_evaluation_1_1_image.html#a949d8186cf8c16ad7a38888bcb7ac81b',1,'BiometricEvaluation::Image::to_string(const Resolution &amp;r)'],['../namespace_biometric_evaluation_1_1_image.html#a3e84f8a4d8da7f5803396f5d66bc9dd7',1,'BiometricEvaluation::Image::to_string(const ROI &amp;r)'],['../be__memory__autoarrayutility_8h.html#a83b24625f867360dd4172b9a79a74492',1,'to_string():&#160;be_memory_autoarrayutility.h']]],
  ['to_5fvector_7',['to_vector',['../class_biometric_evaluation_1_1_memory_1_1_auto_array.html#aac19ffd97c4bc6baa220f17e313dffb0',1,'BiometricEvaluation::Memory::AutoArray']]],
  ['tolowercase_8',['toLowercase',['../namespace_biometric_evaluation_1_1_text.html#ad8a170b9aece18a88131c014676c8925',1,'BiometricEvaluation::Text']]],
  ['tounits_9',['toUnits',['../struct_biometric_evaluation_1_1_image_1_1_resolution.html#a92667325274bc7ab902345a6fffad438',1,'BiometricEvaluation::Image::Resolution']]],
  ['touppercase_10',['toUppercase',['../namespace_biometric_evaluation_1_1_text.html#a67b9675408769df5fe5cbcafe7d50df2',1,'BiometricEvaluation::Text']]],
  ['trim_11',['trim',['../class_biometric_evaluation_1_1_i_o_1_1_file_logsheet.html#ad738f2fb3728e68565630117c40f88b0',1,'BiometricEvaluation::IO::FileLogsheet::trim()'],['../class_biometric_evaluation_1_1_i_o_1_1_logsheet.html#a60dfbc96ff366feb02a9245c0a08ed3b',1,'BiometricEvaluation::IO::Logsheet::trim()'],['../namespace_biometric_evaluation_1_1_text.html#a76dd03317ffd14c12837e6b9982e57a8',1,'BiometricEvaluation::Text::trim(const std::string &amp;s, const char trimChar)']]],
  ['trimwhitespace_12',['trimWhitespace',['../namespace_biometric_evaluation_1_1_text.html#ac89451950ad271fe5fc910bf09ec4ce4',1,'BiometricEvaluation::Text']]],
  ['trywait_13',['trywait',['../class_biometric_evaluation_1_1_process_1_1_semaphore.html#a27e6a4b930b7cf3abcf1f44adee7a4ea',1,'BiometricEvaluation::Process::Semaphore']]]
];
"""

CLASSES_T_SHARD = """\
var searchData=
[
  ['terminatejob_0',['TerminateJob',['../class_biometric_evaluation_1_1_m_p_i_1_1_terminate_job.html',1,'BiometricEvaluation::MPI::TerminateJob']]],
  ['tiff_1',['TIFF',['../class_biometric_evaluation_1_1_image_1_1_t_i_f_f.html',1,'BiometricEvaluation::Image::TIFF']]],
  ['timer_2',['Timer',['../class_biometric_evaluation_1_1_time_1_1_timer.html',1,'BiometricEvaluation::Time::Timer']]]
];
"""

# Bucket "u" of functions: an entry without any declaration site.
MALFORMED_SHARD = """\
var searchData=
[
  ['unlink_0',['unlink']]
];
"""

# Shard files are named by the hex bucket position: "t" is bucket 19 of
# functions, hence functions_13.js. Most listed buckets have no shard here,
# e.g. "z" (functions_19).
SEARCHDATA = """\
var indexSectionsWithContent =
{
  0: "abcdefghijklmnopqrstuvwxyz",
  1: "t",
};

var indexSectionNames =
{
  0: "functions",
  1: "classes",
};

var indexSectionLabels =
{
  0: "Functions",
  1: "Classes",
};
"""

INDEX_FILES: dict[str, str] = {
    "searchdata.js": SEARCHDATA,
    "functions_13.js": FUNCTIONS_T_SHARD,
    "functions_14.js": MALFORMED_SHARD,
    "classes_0.js": CLASSES_T_SHARD,
}

TIMER_ANCHORS = [
    "a289f39f22fc1913ec9a37d5b5d6e3d1a",
    "a03fa25a44a27a07819e68d6436758571",
]
TIFF_ANCHORS = [
    "a14b885972e5f650c741f03551b9a6c67",
    "a02d65e92ad951088a490f1889959c0e1",
]


class CountingSource(MappingShardSource):
    """In-memory source that records fetches and can hold them back."""

    def __init__(self, files: Mapping[str, str] | None = None) -> None:
        super().__init__(INDEX_FILES if files is None else files)
        self.fetches: list[str] = []
        self.gate: asyncio.Event | None = None

    async def fetch(self, name: str) -> str | None:
        self.fetches.append(name)
        if self.gate is not None and name != "searchdata.js":
            await self.gate.wait()
        return await super().fetch(name)

    def count(self, name: str) -> int:
        return self.fetches.count(name)


class MockContext(MagicMock):
    """Mock for MCP Context"""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.lifespan_context: dict[str, Any] = {}

    async def info(self, message: str) -> None:
        """Mock for info method"""
        pass

    async def error(self, message: str) -> None:
        """Mock for error method"""
        pass


def make_engine(**kwargs: Any) -> QueryEngine:
    """Build an engine over the fixture index without pytest fixtures."""
    return QueryEngine(ShardStore(CountingSource()), **kwargs)


@pytest.fixture
def source() -> CountingSource:
    return CountingSource()


@pytest.fixture
def store(source: CountingSource) -> ShardStore:
    return ShardStore(source)


@pytest.fixture
def engine(store: ShardStore) -> QueryEngine:
    return QueryEngine(store)


@pytest.fixture
def mock_context(engine: QueryEngine) -> MockContext:
    """Return a mock Context whose lifespan holds the fixture engine."""
    context = MockContext()
    context.lifespan_context = {
        "engine": engine,
        "store": engine.store,
        "session": QuerySession(engine),
    }
    return context


@pytest.fixture
def index_dir(tmp_path):
    """Write the fixture index to a directory like html/search."""
    for name, text in INDEX_FILES.items():
        (tmp_path / name).write_text(text, encoding="utf-8")
    return tmp_path


@pytest.fixture(autouse=True)
def reset_query_monitor() -> None:
    """Ensure query statistics do not leak between tests."""

    query_monitor.reset()
    yield
    query_monitor.reset()
