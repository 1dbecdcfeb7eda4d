import logging

from fastapi.testclient import TestClient

from pieces.api import create_app
from tests.base import EDITOR_TOKEN, VIEWER_TOKEN, TestCase

logger = logging.getLogger(__name__)


class TestApi(TestCase):
    def setUp(self):
        super().setUp()
        self.write_site()
        self.config = self.get_config()
        self.app = create_app(self.config)
        self.addCleanup(self.app.state.service.store.close)
        self.client = TestClient(self.app)

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def test_render_for_visitors(self):
        response = self.client.get("/api/v1/render/site/home")

        self.assertEqual(response.status_code, 200)
        self.assertIn("<h1>Welcome</h1>", response.text)
        self.assertIn("Hello everybody", response.text)
        self.assertNotIn("data-piece", response.text)

    def test_render_for_editors(self):
        response = self.client.get("/api/v1/render/site/home", headers=self.auth(EDITOR_TOKEN))

        self.assertEqual(response.status_code, 200)
        self.assertIn('data-piece="hero-banner"', response.text)

        response = self.client.get("/api/v1/render/site/home", headers=self.auth(VIEWER_TOKEN))
        self.assertNotIn("data-piece", response.text)

    def test_render_errors(self):
        self.assertEqual(self.client.get("/api/v1/render/site/missing").status_code, 404)
        self.assertEqual(self.client.get("/api/v1/render/other/home").status_code, 404)
        self.assertEqual(self.client.get("/api/v1/render/site/_layout").status_code, 403)

        self.write_view("site", "broken", "[% if %]")
        self.assertEqual(self.client.get("/api/v1/render/site/broken").status_code, 500)

    def test_read_pieces(self):
        self.assertEqual(self.client.get("/api/v1/piece/hero-banner").status_code, 404)
        self.client.get("/api/v1/render/site/home")

        response = self.client.get("/api/v1/piece/hero-banner")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["content"], "<h1>Welcome</h1>")
        self.assertEqual(data["locations"][0]["view"], "home")

        response = self.client.get("/api/v1/piece/")
        self.assertEqual(response.json()["count"], 1)
        self.assertEqual(response.json()["results"][0]["code"], "hero-banner")

    def test_save_piece(self):
        self.client.get("/api/v1/render/site/home")
        data = {"content": "<h1>Spring sale</h1>"}

        self.assertEqual(self.client.post("/api/v1/piece/hero-banner", json=data).status_code, 403)
        self.assertEqual(
            self.client.post(
                "/api/v1/piece/hero-banner", json=data, headers=self.auth(VIEWER_TOKEN)
            ).status_code,
            403,
        )
        self.assertEqual(
            self.client.post(
                "/api/v1/piece/missing", json=data, headers=self.auth(EDITOR_TOKEN)
            ).status_code,
            404,
        )

        response = self.client.post(
            "/api/v1/piece/hero-banner", json=data, headers=self.auth(EDITOR_TOKEN)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["content"], "<h1>Spring sale</h1>")

        response = self.client.get("/api/v1/render/site/home")
        self.assertIn("<h1>Spring sale</h1>", response.text)
        self.assertNotIn("Welcome", response.text)

    def test_meta(self):
        self.assertEqual(self.client.get("/api/v1/meta/site/home/page").status_code, 404)
        self.client.get("/api/v1/render/site/home")

        response = self.client.get("/api/v1/meta/site/home/page")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["title"], "Untitled")

        data = {"title": "Our home", "description": "Welcome home"}
        self.assertEqual(
            self.client.post("/api/v1/meta/site/home/page", json=data).status_code, 403
        )
        response = self.client.post(
            "/api/v1/meta/site/home/page", json=data, headers=self.auth(EDITOR_TOKEN)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["description"], "Welcome home")

        response = self.client.get("/api/v1/render/site/home")
        self.assertIn("<title>Our home</title>", response.text)

    def test_saved_content_is_not_a_template(self):
        self.client.get("/api/v1/render/site/home")

        for content in (
            "<code>{{ name }}</code> and {{ 7*7 }}",
            "Use {% if %} in templates",
            "{% endraw %}{{ x }}",
        ):
            response = self.client.post(
                "/api/v1/piece/hero-banner",
                json={"content": content},
                headers=self.auth(EDITOR_TOKEN),
            )
            self.assertEqual(response.status_code, 200)
            self.assertEqual(len(response.json()["locations"]), 1)

            response = self.client.get("/api/v1/render/site/home")
            self.assertEqual(response.status_code, 200)
            self.assertIn(content, response.text)
            self.assertNotIn("49", response.text)

            response = self.client.get(
                "/api/v1/render/site/home", headers=self.auth(EDITOR_TOKEN)
            )
            self.assertEqual(response.status_code, 200)
            self.assertIn(content, response.text)

    def test_render_nested_partials(self):
        self.write_view("site", "blog/_partial", "partial")
        self.write_view("site", "blog/post", "post")

        self.assertEqual(self.client.get("/api/v1/render/site/blog/_partial").status_code, 403)
        self.assertEqual(self.client.get("/api/v1/render/site/blog/post").status_code, 200)

    def test_saved_meta_is_not_a_template(self):
        self.client.get("/api/v1/render/site/home")
        data = {"title": "{{ 7*7 }}", "html": "{% if %}"}

        response = self.client.post(
            "/api/v1/meta/site/home/page", json=data, headers=self.auth(EDITOR_TOKEN)
        )
        self.assertEqual(response.status_code, 200)

        response = self.client.get("/api/v1/render/site/home")
        self.assertEqual(response.status_code, 200)
        self.assertIn("<title>{{ 7*7 }}</title>", response.text)
        self.assertIn("{% if %}", response.text)
