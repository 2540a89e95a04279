"""Tests for page normalization and the retrying page fetcher."""

import unittest

import pytest

from likedmirror.adapters.library.client import (
    LibraryClientError,
    LibraryResponseError,
    LibraryRetryableError,
    is_retryable_error,
)
from likedmirror.adapters.library.fetcher import PageFetcher, normalize_page, resolve_total
from likedmirror.core.backoff import BackoffExecutor, RetryPolicy
from tests.conftest import FakeLibrarySource, RecordingSleep, raw_track, track_uri


class TestResolveTotal(unittest.TestCase):
    def test_prefers_total_length(self):
        assert resolve_total({"totalLength": 120, "unfilteredTotalLength": 130}) == 120

    def test_falls_back_to_unfiltered_total(self):
        assert resolve_total({"unfilteredTotalLength": 130}) == 130

    def test_null_total_length_falls_back(self):
        assert resolve_total({"totalLength": None, "unfilteredTotalLength": 7}) == 7

    def test_missing_totals_report_zero(self):
        assert resolve_total({"items": []}) == 0

    def test_zero_total_length_is_not_skipped(self):
        assert resolve_total({"totalLength": 0, "unfilteredTotalLength": 5}) == 0

    def test_non_integer_total_is_rejected(self):
        with pytest.raises(LibraryResponseError):
            resolve_total({"totalLength": "many"})

    def test_fractional_total_is_rejected(self):
        with pytest.raises(LibraryResponseError):
            resolve_total({"totalLength": 12.7})

    def test_boolean_total_is_rejected(self):
        with pytest.raises(LibraryResponseError):
            resolve_total({"totalLength": True})

    def test_numeric_string_total_is_rejected(self):
        with pytest.raises(LibraryResponseError):
            resolve_total({"unfilteredTotalLength": "120"})

    def test_negative_total_reports_zero(self):
        assert resolve_total({"totalLength": -3}) == 0


class TestNormalizePage(unittest.TestCase):
    def test_keeps_only_track_fields(self):
        page = normalize_page(
            {"items": [raw_track(1)], "totalLength": 1}, offset=0, limit=50
        )

        track = page.items[0]
        assert track.uri == track_uri(1)
        assert track.name == "Track 1"
        assert [a.name for a in track.artists] == ["Artist 1"]
        assert track.album.name == "Album 1"
        assert track.added_at is not None
        assert track.duration_ms == 180001
        assert set(track.model_dump()) == {
            "uri",
            "name",
            "artists",
            "album",
            "added_at",
            "duration_ms",
        }

    def test_plain_integer_duration(self):
        item = {**raw_track(2), "duration": 2500}
        page = normalize_page({"items": [item], "totalLength": 1}, offset=0, limit=50)
        assert page.items[0].duration_ms == 2500

    def test_missing_items_is_an_empty_page(self):
        page = normalize_page({"totalLength": 10}, offset=10, limit=50)
        assert page.items == ()
        assert page.total == 10
        assert page.offset == 10

    def test_items_must_be_a_list(self):
        with pytest.raises(LibraryResponseError):
            normalize_page({"items": {"uri": "x"}}, offset=0, limit=50)

    def test_item_without_uri_fails_the_page(self):
        item = {k: v for k, v in raw_track(3).items() if k != "uri"}
        with pytest.raises(LibraryResponseError):
            normalize_page({"items": [item]}, offset=0, limit=50)


class TestPageFetcher(unittest.IsolatedAsyncioTestCase):
    def _fetcher(self, source, **kwargs):
        self.sleep = RecordingSleep()
        return PageFetcher(
            source,
            policy=RetryPolicy(max_retries=3, initial_delay=2.0),
            executor=BackoffExecutor(sleep=self.sleep),
            **kwargs,
        )

    async def test_fetch_returns_normalized_page(self):
        source = FakeLibrarySource(120)
        page = await self._fetcher(source).fetch(50, 50)

        assert source.calls == [(50, 50)]
        assert len(page.items) == 50
        assert page.items[0].uri == track_uri(50)
        assert page.total == 120

    async def test_limit_is_clamped_to_max_page_size(self):
        source = FakeLibrarySource(500)
        await self._fetcher(source, max_page_size=100).fetch(0, 250)
        await self._fetcher(source, max_page_size=100).fetch(0, 0)

        assert source.calls == [(0, 100), (0, 1)]

    async def test_retries_transient_failures(self):
        source = FakeLibrarySource(10)
        source.failures = [ConnectionError("reset")]

        page = await self._fetcher(source).fetch(0, 50)

        assert len(page.items) == 10
        assert source.fetches == 2
        assert self.sleep.delays == [2.0]

    async def test_malformed_payload_is_retried_then_raised(self):
        class BrokenSource(FakeLibrarySource):
            async def get_tracks(self, *, offset, limit):
                self.calls.append((offset, limit))
                return {"items": "nope"}

        source = BrokenSource()
        with pytest.raises(LibraryResponseError):
            await self._fetcher(source).fetch(0, 50)
        assert source.fetches == 3

    async def test_http_policy_does_not_retry_permanent_errors(self):
        source = FakeLibrarySource(10)
        source.failures = [LibraryClientError("get_tracks returned HTTP 404")]
        sleep = RecordingSleep()
        fetcher = PageFetcher(
            source,
            policy=RetryPolicy(retry_if=is_retryable_error),
            executor=BackoffExecutor(sleep=sleep),
        )

        with pytest.raises(LibraryClientError):
            await fetcher.fetch(0, 50)

        assert source.fetches == 1
        assert sleep.delays == []

    async def test_http_policy_retries_transient_errors(self):
        source = FakeLibrarySource(10)
        source.failures = [LibraryRetryableError("HTTP 503", status_code=503)]
        sleep = RecordingSleep()
        fetcher = PageFetcher(
            source,
            policy=RetryPolicy(retry_if=is_retryable_error),
            executor=BackoffExecutor(sleep=sleep),
        )

        page = await fetcher.fetch(0, 50)

        assert len(page.items) == 10
        assert source.fetches == 2
        assert sleep.delays == [2.0]


if __name__ == "__main__":
    unittest.main()
