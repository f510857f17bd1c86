"""
根数数据源测试
"""

import json
import logging

import pytest

from core.exceptions import UpstreamUnavailable
from core.models.element_set import OrbitalElementSet
from core.sources.element_source import (
    JsonFileElementSetSource,
    StaticElementSetSource,
    collection_fingerprint,
    index_element_sets,
)
from tests.conftest import ISS_LINE1, ISS_LINE2, make_element_set


def write_records(path, records):
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


class TestIndexing:
    """测试索引与摘要"""

    def test_later_duplicate_wins(self):
        first = make_element_set("SAT-1")
        second = OrbitalElementSet(name="SAT-1", line1=ISS_LINE1, line2=ISS_LINE2 + " ")

        indexed = index_element_sets([first, second])

        assert list(indexed) == ["SAT-1"]
        assert indexed["SAT-1"] is second

    def test_fingerprint_independent_of_order(self):
        a = index_element_sets([make_element_set("A"), make_element_set("B")])
        b = index_element_sets([make_element_set("B"), make_element_set("A")])
        assert collection_fingerprint(a) == collection_fingerprint(b)

    def test_fingerprint_changes_with_content(self):
        a = index_element_sets([make_element_set("A")])
        b = index_element_sets([make_element_set("A"), make_element_set("B")])
        assert collection_fingerprint(a) != collection_fingerprint(b)


class TestStaticElementSetSource:
    """测试内存数据源"""

    def test_fetch(self):
        source = StaticElementSetSource([make_element_set("A"), make_element_set("B")])
        assert set(source.fetch()) == {"A", "B"}

    def test_update_replaces_content(self):
        source = StaticElementSetSource([make_element_set("A")])
        source.update([make_element_set("C")])
        assert set(source.fetch()) == {"C"}

    def test_fetch_returns_copy(self):
        source = StaticElementSetSource([make_element_set("A")])
        source.fetch().clear()
        assert set(source.fetch()) == {"A"}

    def test_empty(self):
        assert StaticElementSetSource().fetch() == {}


class TestJsonFileElementSetSource:
    """测试JSON文件数据源"""

    def test_fetch_records(self, tmp_path):
        path = write_records(tmp_path / "elements.json", [
            {"name": "ISS (ZARYA)", "line1": ISS_LINE1, "line2": ISS_LINE2},
            {"name": "OTHER", "line1": ISS_LINE1, "line2": ISS_LINE2},
        ])

        element_sets = JsonFileElementSetSource(path).fetch()

        assert set(element_sets) == {"ISS (ZARYA)", "OTHER"}
        assert element_sets["OTHER"].line1 == ISS_LINE1

    def test_bad_records_skipped(self, tmp_path, caplog):
        path = write_records(tmp_path / "elements.json", [
            {"name": "GOOD", "line1": ISS_LINE1, "line2": ISS_LINE2},
            {"name": "NO_LINES"},
            {"name": "", "line1": ISS_LINE1, "line2": ISS_LINE2},
            "not a record",
        ])

        with caplog.at_level(logging.WARNING, logger="core.sources.element_source"):
            element_sets = JsonFileElementSetSource(path).fetch()

        assert list(element_sets) == ["GOOD"]
        assert len(caplog.records) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(UpstreamUnavailable):
            JsonFileElementSetSource(tmp_path / "missing.json").fetch()

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "elements.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(UpstreamUnavailable):
            JsonFileElementSetSource(path).fetch()

    def test_top_level_not_list(self, tmp_path):
        path = write_records(tmp_path / "elements.json", {"name": "ISS"})
        with pytest.raises(UpstreamUnavailable):
            JsonFileElementSetSource(str(path)).fetch()

    def test_empty_list(self, tmp_path):
        path = write_records(tmp_path / "elements.json", [])
        assert JsonFileElementSetSource(path).fetch() == {}
