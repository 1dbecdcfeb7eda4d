import logging

from pieces.api import create_piece_service
from pieces.processor import as_literal, render_editable
from tests.base import TestCase

logger = logging.getLogger(__name__)


class TestPiecesProcessor(TestCase):
    """
    Pieces and page meta used from real views.
    """

    def setUp(self):
        super().setUp()
        self.write_site()
        self.service = create_piece_service(self.get_config())
        self.addCleanup(self.service.store.close)

    def views(self, editable: bool):
        return self.service.views.with_environment(self.service.environment(editable))

    def compiled(self, editable: bool) -> str:
        return self.views(editable).compile("site:home").read_text(encoding="utf-8")

    def test_compile_view_links_pieces(self):
        self.service.compile_view("site", "home")

        piece = self.service.find_piece("hero-banner")
        self.assertEqual(piece.content, "<h1>Welcome</h1>")
        self.assertEqual(
            [(location.view, location.namespace) for location in piece.locations],
            [("home", "site")],
        )
        self.assertEqual(self.service.find_meta("site", "home", "page").title, "Untitled")
        self.assertEqual(len(self.service.cache_locator.get_files("home", "site")), 2)

    def test_variants(self):
        self.service.compile_view("site", "home")

        plain = self.compiled(False)
        editable = self.compiled(True)
        logger.debug("plain=%s editable=%s", plain, editable)

        self.assertIn("<h1>Welcome</h1>", plain)
        self.assertNotIn("data-piece", plain)
        self.assertIn("<title>{% raw %}Untitled{% endraw %}</title>", plain)
        self.assertIn('{{ visitor | default("everybody") }}', plain)
        self.assertIn(render_editable("hero-banner", "<h1>Welcome</h1>"), editable)

    def test_refresh_piece_updates_views(self):
        self.service.compile_view("site", "home")
        piece = self.service.find_piece("hero-banner")
        piece.content = "<h1>Hello again</h1>"
        self.service.store.save_piece(piece)

        self.service.refresh_piece(piece)

        html = self.views(False).render("site:home", {"visitor": "Ann"})
        self.assertIn("<h1>Hello again</h1>", html)
        self.assertIn("<p>Hello Ann</p>", html)
        self.assertNotIn("Welcome", html)

    def test_refresh_piece_drops_removed_views(self):
        self.service.compile_view("site", "home")
        (self.tmpdir / "views" / "site" / "home.html").unlink()
        piece = self.service.find_piece("hero-banner")

        self.service.refresh_piece(piece)

        self.assertEqual(piece.locations, [])
        self.assertEqual(self.service.find_piece("hero-banner").locations, [])
        self.assertEqual(self.service.cache_locator.get_files("home", "site"), [])

    def test_refresh_meta(self):
        self.service.compile_view("site", "home")
        meta = self.service.find_meta("site", "home", "page")
        meta.update({"title": "Home"})
        self.service.store.save_meta(meta)

        self.service.refresh_meta(meta)

        for editable in (False, True):
            self.assertIn("<title>Home</title>", self.views(editable).render("site:home"))

    def test_editable_escapes_code(self):
        self.assertEqual(
            render_editable('a"b', "x"),
            '<div class="cms-piece" data-piece="a&quot;b">{% raw %}x{% endraw %}</div>',
        )

    def test_as_literal(self):
        self.assertEqual(as_literal(""), "")
        self.assertEqual(as_literal("{{ x }}"), "{% raw %}{{ x }}{% endraw %}")
        self.assertEqual(
            as_literal("a{% endraw %}b"),
            "{% raw %}a{% endraw %}{{ '{% endraw %}' }}{% raw %}b{% endraw %}",
        )

    def test_piece_content_is_not_a_template(self):
        self.service.compile_view("site", "home")
        piece = self.service.find_piece("hero-banner")
        piece.content = "<p>{{ 7*7 }} {% if %} {%- endraw %} {# note #}</p>"
        self.service.store.save_piece(piece)

        self.service.refresh_piece(piece)

        self.assertEqual(len(piece.locations), 1)
        for editable in (False, True):
            html = self.views(editable).render("site:home", {"visitor": "Ann"})
            self.assertIn(piece.content, html)
            self.assertNotIn("49", html)
