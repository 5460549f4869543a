import unittest

from src.backend.scraper.furaffinity_parser import (
    favorites_url,
    parse_favorite_ids,
    parse_submission,
    view_url,
)
from src.shared.errors import ParseError


FAVORITES_HTML = """
<html><body>
<section id="gallery-favorites" class="gallery">
  <figure id="sid-111" class="r-general t-image"><b><u><a href="/view/111/"><img src="//t.furaffinity.net/111.jpg"></a></u></b></figure>
  <figure id="sid-222" class="r-adult t-image"><b><u><a href="/view/222/"></a></u></b></figure>
  <figure id="sid-111" class="r-general t-image"></figure>
  <figure id="sid-333" class="t-text"></figure>
  <figure id="banner" class="t-image"></figure>
</section>
</body></html>
"""

SUBMISSION_HTML = """
<html><body>
<div class="submission-id-sub-container">
  <a href="/user/somebody/"><strong>Some Body</strong></a>
  <span class="popup_date" title="Jan 1, 2024 10:00 AM">2 years ago</span>
</div>
<div class="rating"><span class="rating-box inline adult">Adult</span></div>
<div class="download"><a href="//d.furaffinity.net/art/somebody/1700000000/1700000000.somebody_pic.png">Download</a></div>
<section class="tags-row">
  <span class="tags"><a href="/search/@keywords fox">fox</a></span>
  <span class="tags"><a href="/search/@keywords solo">solo</a></span>
  <span class="tags"><a href="/search/@keywords"> </a></span>
</section>
</body></html>
"""


class TestFavoritesListing(unittest.TestCase):
    def test_ids_in_page_order_without_duplicates(self) -> None:
        self.assertEqual(parse_favorite_ids(FAVORITES_HTML), ["111", "222"])

    def test_empty_page(self) -> None:
        self.assertEqual(parse_favorite_ids("<html><body><p>No favorites</p></body></html>"), [])

    def test_urls(self) -> None:
        self.assertEqual(favorites_url(1), "https://www.furaffinity.net/controls/favorites/")
        self.assertEqual(favorites_url(3), "https://www.furaffinity.net/controls/favorites/3/")
        self.assertEqual(view_url("42"), "https://www.furaffinity.net/view/42/")


class TestSubmissionPage(unittest.TestCase):
    def test_full_submission(self) -> None:
        detail = parse_submission(SUBMISSION_HTML, submission_id="900")

        self.assertEqual(detail.source_kind, "furaffinity")
        self.assertEqual(detail.source_id, "900")
        self.assertEqual(detail.canonical_url, "https://www.furaffinity.net/view/900/")
        self.assertEqual(
            detail.download_url,
            "https://d.furaffinity.net/art/somebody/1700000000/1700000000.somebody_pic.png",
        )
        self.assertEqual(detail.ext, "png")
        self.assertEqual(detail.rating, "e")
        self.assertEqual(detail.primary_artist, "some_body")
        self.assertEqual(detail.tags.general, ("fox", "solo"))
        self.assertEqual(detail.tags.artist, ("some_body",))
        self.assertEqual(detail.created_at, "Jan 1, 2024 10:00 AM")
        self.assertIsNone(detail.advertised_hash)

    def test_artist_falls_back_to_download_url(self) -> None:
        html = """
        <div class="download"><a href="https://d.furaffinity.net/art/painter/1/1.painter_x.jpg">Download</a></div>
        <div class="rating"><span>Mature</span></div>
        <section class="tags-row"></section>
        """
        detail = parse_submission(html, submission_id="1")
        self.assertEqual(detail.primary_artist, "painter")
        self.assertEqual(detail.rating, "q")
        self.assertEqual(detail.tags.general, ())
        self.assertEqual(detail.ext, "jpg")

    def test_rating_defaults_to_safe(self) -> None:
        html = """
        <div class="download"><a href="/art/painter/1/1.painter_x.gif">Download</a></div>
        <section class="tags-row"><span class="tags"><a>cat</a></span></section>
        """
        detail = parse_submission(html, submission_id="2")
        self.assertEqual(detail.rating, "s")
        self.assertEqual(detail.download_url, "https://www.furaffinity.net/art/painter/1/1.painter_x.gif")

    def test_missing_download_link_raises(self) -> None:
        html = '<section class="tags-row"><span class="tags"><a>cat</a></span></section>'
        with self.assertRaises(ParseError):
            parse_submission(html, submission_id="3")

    def test_missing_tag_section_raises(self) -> None:
        html = '<div class="download"><a href="//d.furaffinity.net/art/a/1/1.a.png">Download</a></div>'
        with self.assertRaises(ParseError):
            parse_submission(html, submission_id="4")


if __name__ == "__main__":
    unittest.main()
