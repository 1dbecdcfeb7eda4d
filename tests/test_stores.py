import logging

from pieces.stores.db import DbStore
from pieces.types import PageMeta, Piece
from tests.base import TestCase

logger = logging.getLogger(__name__)


class TestDbStore(TestCase):
    def setUp(self):
        super().setUp()
        self.store = DbStore("sqlite://:memory:")
        self.addCleanup(self.store.close)

    def test_only_sqlite(self):
        with self.assertRaises(ValueError):
            DbStore("postgres://localhost/pieces")

    def test_file_database(self):
        url = f"sqlite://{self.tmpdir / 'data' / 'pieces.db'}"
        store = DbStore(url)
        store.save_piece(Piece(code="kept", content="still here"))
        store.close()

        store = DbStore(url)
        self.addCleanup(store.close)
        self.assertEqual(store.find_piece("kept").content, "still here")

    def test_save_and_update_piece(self):
        piece = self.store.save_piece(self.store.create_piece({"code": "intro"}))
        self.assertTrue(piece.is_loaded())
        self.assertEqual(self.store.find_piece("intro").content, "")

        piece.content = "<p>Hi</p>"
        self.store.save_piece(piece)
        self.assertEqual(self.store.find_piece("intro").content, "<p>Hi</p>")

    def test_duplicate_piece_uses_stored_one(self):
        first = Piece(code="race", content="winner")
        second = Piece(code="race", content="loser")
        self.store.save_piece(first)
        self.store.save_piece(second)

        self.assertEqual(first.id, second.id)
        self.assertEqual(second.content, "winner")
        self.assertEqual(self.store.list_pieces().count, 1)

    def test_duplicate_location_uses_stored_one(self):
        piece = self.store.save_piece(Piece(code="race"))
        first = self.store.save_location(self.store.create_location(piece, "home", "site"))
        second = self.store.save_location(self.store.create_location(piece, "home", "site"))

        self.assertEqual(first.id, second.id)
        self.assertEqual(len(self.store.load_locations(piece.id)), 1)

    def test_location_needs_saved_piece(self):
        with self.assertRaises(ValueError):
            self.store.create_location(Piece(code="unsaved"), "home", "site")

    def test_delete_location(self):
        piece = self.store.save_piece(Piece(code="logo"))
        location = self.store.save_location(self.store.create_location(piece, "home", "site"))

        self.assertTrue(self.store.delete_location(location))
        self.assertFalse(self.store.delete_location(location))
        self.assertEqual(self.store.find_piece("logo").locations, [])

    def test_meta(self):
        meta = self.store.create_meta(
            {"namespace": "site", "view": "home", "code": "page", "title": "Home"}
        )
        self.store.save_meta(meta)
        self.assertTrue(meta.is_loaded())

        meta.update({"description": "The home page"})
        self.store.save_meta(meta)

        stored = self.store.find_meta("site", "home", "page")
        self.assertEqual(stored.title, "Home")
        self.assertEqual(stored.description, "The home page")
        self.assertIsNone(self.store.find_meta("site", "about", "page"))

    def test_meta_key_can_not_change(self):
        meta = PageMeta(namespace="site", view="home", code="page")
        with self.assertRaises(ValueError):
            meta.update({"view": "about"})

    def test_duplicate_meta_uses_stored_one(self):
        first = PageMeta(namespace="site", view="home", code="page", title="First")
        second = PageMeta(namespace="site", view="home", code="page", title="Second")
        self.store.save_meta(first)
        self.store.save_meta(second)

        self.assertEqual(first.id, second.id)
        self.assertEqual(second.title, "First")

    def test_list_pieces(self):
        for code in ["c", "a", "b"]:
            piece = self.store.save_piece(Piece(code=code))
            self.store.save_location(self.store.create_location(piece, "home", "site"))

        pieces = self.store.list_pieces(offset=1, limit=5)
        self.assertEqual(pieces.count, 3)
        self.assertEqual([piece.code for piece in pieces.results], ["b", "c"])
        self.assertEqual(len(pieces.results[0].locations), 1)

        pieces = self.store.list_pieces(limit=0)
        self.assertEqual(pieces.count, 3)
        self.assertEqual(pieces.results, [])
