import asyncio
import unittest
from unittest.mock import patch

from src.backend.net.throttle import Throttle, ThrottleConfig
from src.backend.scraper.base import FailurePolicy
from src.backend.scraper.furaffinity_scrape import FurAffinityScrapeAdapter
from src.backend.scraper.models import Candidate, MediaDetail
from src.shared.errors import (
    ConfigurationError,
    MediaFetchError,
    ParseError,
    RemoteProtocolError,
)


LISTING_HTML = """
<section class="gallery">
  <figure id="sid-11" class="t-image"></figure>
  <figure id="sid-12" class="t-image"></figure>
</section>
"""

SUBMISSION_HTML = """
<div class="submission-id-sub-container"><a href="/user/painter/"><strong>Painter</strong></a></div>
<div class="rating"><span>Mature</span></div>
<div class="download"><a href="//d.furaffinity.net/art/painter/1/1.painter_pic.jpg">Download</a></div>
<section class="tags-row"><span class="tags"><a>fox</a></span></section>
"""


class FakeHttp:
    def __init__(self, pages=None, error=None):
        self.pages = dict(pages or {})
        self.error = error
        self.calls = []

    def get_text(self, url, *, params=None):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.pages.get(url, "<html></html>")

    def get_bytes(self, url, *, params=None):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return b"fa-bytes"


def no_throttle() -> Throttle:
    return Throttle(ThrottleConfig(enabled=False))


def make_adapter(http: FakeHttp, *, throttle=None, max_pages: int = 50) -> FurAffinityScrapeAdapter:
    return FurAffinityScrapeAdapter(
        cookie_a="aaa",
        cookie_b="bbb",
        throttle=throttle or no_throttle(),
        http=http,
        max_pages=max_pages,
    )


class TestFurAffinityScrapeAdapter(unittest.TestCase):
    def test_missing_cookie_is_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            FurAffinityScrapeAdapter(cookie_a="aaa", cookie_b="  ", http=FakeHttp())

    def test_session_cookie_header(self) -> None:
        with patch("src.backend.scraper.furaffinity_scrape.HttpClient") as client_cls:
            FurAffinityScrapeAdapter(cookie_a=" aaa ", cookie_b="bbb", throttle=no_throttle())

        headers = client_cls.call_args.kwargs["headers"]
        self.assertEqual(headers, {"Cookie": "a=aaa; b=bbb"})

    def test_list_page_follows_pages_until_cap(self) -> None:
        http = FakeHttp({
            "https://www.furaffinity.net/controls/favorites/": LISTING_HTML,
            "https://www.furaffinity.net/controls/favorites/2/": LISTING_HTML,
        })
        adapter = make_adapter(http, max_pages=2)

        first = asyncio.run(adapter.list_page(None))
        self.assertEqual([c.source_id for c in first.candidates], ["11", "12"])
        self.assertEqual(first.next_cursor, "2")

        second = asyncio.run(adapter.list_page(first.next_cursor))
        self.assertEqual(len(second.candidates), 2)
        self.assertIsNone(second.next_cursor)

    def test_empty_listing_has_no_next_page(self) -> None:
        page = asyncio.run(make_adapter(FakeHttp()).list_page("3"))
        self.assertEqual(page.candidates, ())
        self.assertIsNone(page.next_cursor)

    def test_every_request_waits_on_throttle(self) -> None:
        http = FakeHttp({
            "https://www.furaffinity.net/controls/favorites/": LISTING_HTML,
            "https://www.furaffinity.net/view/11/": SUBMISSION_HTML,
        })
        throttle = no_throttle()
        adapter = make_adapter(http, throttle=throttle)

        async def scenario():
            page = await adapter.list_page(None)
            detail = await adapter.fetch_detail(page.candidates[0])
            content = await adapter.fetch_media(detail)
            return detail, content

        detail, content = asyncio.run(scenario())

        self.assertEqual(content, b"fa-bytes")
        self.assertEqual(detail.download_url, "https://d.furaffinity.net/art/painter/1/1.painter_pic.jpg")
        self.assertEqual(detail.rating, "q")
        self.assertEqual(len(http.calls), 3)
        self.assertEqual(throttle.waits, 3)

    def test_media_transport_error_becomes_media_fetch_error(self) -> None:
        adapter = make_adapter(FakeHttp(error=RemoteProtocolError("HTTP 404", status_code=404)))
        detail = MediaDetail(
            source_kind="furaffinity",
            source_id="11",
            canonical_url="https://www.furaffinity.net/view/11/",
            download_url="https://d.furaffinity.net/art/painter/1/1.painter_pic.jpg",
            ext="jpg",
        )

        with self.assertRaises(MediaFetchError):
            asyncio.run(adapter.fetch_media(detail))

    def test_detail_without_download_link_is_parse_error(self) -> None:
        adapter = make_adapter(FakeHttp())
        with self.assertRaises(ParseError):
            asyncio.run(adapter.fetch_detail(Candidate(source_kind="furaffinity", source_id="5")))

    def test_every_failure_is_skipped(self) -> None:
        adapter = make_adapter(FakeHttp())
        for exc in (
            RemoteProtocolError("HTTP 503", status_code=503),
            ParseError("bad markup"),
            MediaFetchError("Download failed"),
        ):
            self.assertIs(adapter.failure_policy(exc), FailurePolicy.SKIP)
        self.assertEqual(
            adapter.detail_url(Candidate(source_kind="furaffinity", source_id="7")),
            "https://www.furaffinity.net/view/7/",
        )


if __name__ == "__main__":
    unittest.main()
