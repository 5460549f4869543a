import hashlib
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from src.backend.app import create_app
from src.shared.errors import RemoteProtocolError


async def fake_fetch_media(self, detail):  # noqa: ANN001
    return f"bytes-of-{detail.source_id}".encode()


async def fake_check_ok(self):  # noqa: ANN001
    return None


async def fake_check_refused(self):  # noqa: ANN001
    raise RemoteProtocolError("HTTP 401 for posts.json", status_code=401)


def post_dto(post_id: int, **overrides) -> dict:
    body = {
        "id": post_id,
        "file_url": f"https://static1.e621.net/data/{post_id}.png",
        "file_ext": "png",
        "rating": "s",
        "score_total": 10,
        "sources": ["https://www.furaffinity.net/view/1/"],
        "tags": {"artist": ["painter"], "general": ["solo"]},
    }
    body.update(overrides)
    return body


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.mkdtemp()
        self.app = create_app(data_dir=Path(self.temp_dir) / "data")
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def configure_library(self) -> Path:
        root = Path(self.temp_dir) / "library"
        resp = self.client.put(
            "/api/settings",
            json={"library_root": str(root), "throttle": {"enabled": False}},
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        return root


class TestSettingsRoutes(ApiTestCase):
    def test_defaults(self) -> None:
        resp = self.client.get("/api/settings")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertIsNone(data["library_root"])
        self.assertFalse(data["e621"]["configured"])
        self.assertFalse(data["furaffinity"]["configured"])
        self.assertEqual(data["fa_max_pages"], 50)

    def test_secrets_are_never_echoed(self) -> None:
        resp = self.client.put("/api/settings/e621-credentials", json={"username": "fan", "api_key": "s3cr3t-key"})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["e621"]["configured"])
        self.assertEqual(resp.json()["e621"]["username"], "fan")
        self.assertNotIn("s3cr3t-key", resp.text)

        resp = self.client.put("/api/settings/furaffinity-credentials", json={"a": "cookie-a-value", "b": "cookie-b-value"})
        self.assertTrue(resp.json()["furaffinity"]["configured"])
        self.assertNotIn("cookie-a-value", resp.text)
        self.assertNotIn("cookie-a-value", self.client.get("/api/settings").text)

        resp = self.client.delete("/api/settings/e621-credentials")
        self.assertFalse(resp.json()["e621"]["configured"])
        self.assertTrue(resp.json()["furaffinity"]["configured"])

    def test_put_settings_partial_update(self) -> None:
        root = self.configure_library()
        resp = self.client.put("/api/settings", json={"fa_max_pages": 5, "upgrade_enabled": False})
        data = resp.json()
        self.assertEqual(data["library_root"], str(root.resolve()))
        self.assertEqual(data["fa_max_pages"], 5)
        self.assertFalse(data["upgrade_enabled"])
        self.assertFalse(data["throttle"]["enabled"])

    def test_put_settings_validates(self) -> None:
        resp = self.client.put("/api/settings", json={"e621_page_limit": 1000})
        self.assertEqual(resp.status_code, 422)
        resp = self.client.put("/api/settings", json={"library_root": "   "})
        self.assertEqual(resp.status_code, 400)

    def test_e621_credentials_check(self) -> None:
        resp = self.client.post("/api/settings/e621-credentials/test")
        self.assertEqual(resp.status_code, 400)

        self.client.put("/api/settings/e621-credentials", json={"username": "fan", "api_key": "k"})
        with patch("src.backend.scraper.e621_api.E621ApiAdapter.check_connection", new=fake_check_ok):
            resp = self.client.post("/api/settings/e621-credentials/test")
        self.assertEqual(resp.json(), {"ok": True, "message": "Connected to e621 successfully"})

        with patch("src.backend.scraper.e621_api.E621ApiAdapter.check_connection", new=fake_check_refused):
            resp = self.client.post("/api/settings/e621-credentials/test")
        self.assertEqual(resp.status_code, 502)
        self.assertIn("HTTP 401", resp.json()["detail"])


class TestSyncRoutes(ApiTestCase):
    def test_unknown_kind_is_404(self) -> None:
        self.assertEqual(self.client.post("/api/sync/twitter/start").status_code, 404)
        self.assertEqual(self.client.get("/api/sync/twitter/status").status_code, 404)

    def test_start_without_credentials_is_400(self) -> None:
        self.configure_library()
        resp = self.client.post("/api/sync/e621/start", json={})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("credentials", resp.json()["detail"])

        resp = self.client.post("/api/sync/furaffinity/start")
        self.assertEqual(resp.status_code, 400)

    def test_start_without_library_root_is_400(self) -> None:
        self.client.put("/api/settings/e621-credentials", json={"username": "fan", "api_key": "k"})
        resp = self.client.post("/api/sync/e621/start", json={"max_new_items": 3})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Library root", resp.json()["detail"])

    def test_invalid_max_new_items_is_rejected(self) -> None:
        resp = self.client.post("/api/sync/e621/start", json={"max_new_items": 0})
        self.assertEqual(resp.status_code, 422)

    def test_status_and_cancel_when_idle(self) -> None:
        resp = self.client.get("/api/sync/e621/status")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["kind"], "e621")
        self.assertEqual(data["phase"], "Idle")
        self.assertFalse(data["running"])
        self.assertEqual(data["imported"], 0)

        resp = self.client.post("/api/sync/furaffinity/cancel")
        self.assertEqual(resp.json(), {"ok": True, "message": "Not running"})


class TestLibraryRoutes(ApiTestCase):
    def test_stats_require_library_root(self) -> None:
        self.assertEqual(self.client.get("/api/library/stats").status_code, 400)
        self.configure_library()
        self.assertEqual(self.client.get("/api/library/stats").json(), {"items": 0})

    def test_import_post_then_duplicates(self) -> None:
        root = self.configure_library()

        with patch("src.backend.scraper.e621_api.E621ApiAdapter.fetch_media", new=fake_fetch_media):
            first = self.client.post("/api/library/posts", json=post_dto(10))
            again = self.client.post("/api/library/posts", json=post_dto(10))
            same_bytes = self.client.post(
                "/api/library/posts",
                json=post_dto(11, file_md5=hashlib.md5(b"bytes-of-10").hexdigest()),
            )

        self.assertEqual(first.json(), {"ok": True, "message": "Downloaded into library"})
        self.assertEqual(again.json(), {"ok": True, "message": "Already downloaded"})
        self.assertEqual(same_bytes.json(), {"ok": True, "message": "Already downloaded (md5 match)"})
        self.assertEqual(self.client.get("/api/library/stats").json(), {"items": 1})
        self.assertTrue((root / "media" / "painter_e621_10.png").exists())

    def test_import_post_without_file_url_is_recorded(self) -> None:
        self.configure_library()
        resp = self.client.post("/api/library/posts", json=post_dto(12, file_url=None))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["ok"])

        rows = self.client.get("/api/library/unavailable", params={"limit": 5}).json()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["source"], "e621")
        self.assertEqual(rows[0]["source_id"], "12")
        self.assertEqual(rows[0]["reason"], "missing_file_url")

    def test_import_post_without_library_is_400(self) -> None:
        resp = self.client.post("/api/library/posts", json=post_dto(13))
        self.assertEqual(resp.status_code, 400)

    def test_import_post_with_unusable_extension_is_400(self) -> None:
        root = self.configure_library()
        resp = self.client.post("/api/library/posts", json=post_dto(14, file_ext="."))
        self.assertEqual(resp.status_code, 400)
        self.assertIn("file_ext", resp.json()["detail"])
        self.assertEqual(list((root / "media").iterdir()), [])


if __name__ == "__main__":
    unittest.main()
