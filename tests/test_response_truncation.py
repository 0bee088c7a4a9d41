"""Tests for response size limiting."""

import pytest

from thoughtchain.services.response_truncation import (
    DEFAULT_MAX_RESPONSE_SIZE,
    estimate_json_size,
    get_max_response_size,
    truncate_response,
    truncate_results_list,
)


def items(count, width=50):
    return [{"n": i, "text": "x" * width} for i in range(count)]


class TestMaxSize:

    def test_default(self, monkeypatch):
        monkeypatch.delenv("THOUGHTCHAIN_MAX_RESPONSE_SIZE", raising=False)
        assert get_max_response_size() == DEFAULT_MAX_RESPONSE_SIZE

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("THOUGHTCHAIN_MAX_RESPONSE_SIZE", "777")
        assert get_max_response_size() == 777

    def test_invalid_env(self, monkeypatch):
        monkeypatch.setenv("THOUGHTCHAIN_MAX_RESPONSE_SIZE", "big")
        assert get_max_response_size() == DEFAULT_MAX_RESPONSE_SIZE

    def test_estimate(self):
        assert estimate_json_size({"a": 1}) == len('{"a": 1}')


class TestTruncateList:

    def test_fits(self):
        kept, truncated = truncate_results_list(items(3), 10000, {}, "results")
        assert len(kept) == 3
        assert not truncated

    def test_cut_from_end(self):
        kept, truncated = truncate_results_list(items(50), 1000, {}, "results")
        assert truncated
        assert 0 < len(kept) < 50
        assert kept == items(50)[:len(kept)]

    def test_from_end_keeps_tail_in_order(self):
        source = items(50)
        kept, truncated = truncate_results_list(source, 1000, {}, "thoughts", from_end=True)
        assert truncated
        assert 0 < len(kept) < 50
        assert kept == source[-len(kept):]

    def test_no_room(self):
        kept, truncated = truncate_results_list(items(5), 150, {"pad": "y" * 100}, "results")
        assert kept == []
        assert truncated

    def test_empty(self):
        assert truncate_results_list([], 10, {}, "results") == ([], False)


class TestTruncateResponse:

    def test_small_response_unchanged(self):
        response = {"results": items(2), "count": 2}
        assert truncate_response(response, 10000) is response

    def test_large_response_noted(self):
        response = {"results": items(100), "count": 100}
        result = truncate_response(response, 2000)

        assert result["count"] == 100
        assert len(result["results"]) < 100
        note = result["_truncated"]
        assert note["original_counts"] == {"results": 100}
        assert note["returned_counts"] == {"results": len(result["results"])}
        assert "2000 bytes" in note["message"]
        # Input left alone
        assert len(response["results"]) == 100

    def test_oversized_without_lists(self):
        response = {"content": "z" * 500}
        assert truncate_response(response, 100) == response

    @pytest.mark.parametrize("field", ["thoughts", "results", "sessions", "branches"])
    def test_each_list_field(self, field):
        result = truncate_response({field: items(100)}, 1500)
        assert field in result["_truncated"]["original_counts"]

    def test_thoughts_keep_most_recent(self):
        result = truncate_response({"thoughts": items(100), "count": 100}, 1500)

        kept = result["thoughts"]
        assert kept[-1]["n"] == 99
        assert [t["n"] for t in kept] == list(range(100 - len(kept), 100))
        assert result["_truncated"]["returned_counts"] == {"thoughts": len(kept)}

    def test_results_keep_first(self):
        result = truncate_response({"results": items(100)}, 1500)
        assert result["results"][0]["n"] == 0

    def test_env_limit_used(self, monkeypatch):
        monkeypatch.setenv("THOUGHTCHAIN_MAX_RESPONSE_SIZE", "1000")
        assert "_truncated" in truncate_response({"results": items(100)})
