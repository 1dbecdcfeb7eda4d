import logging
from typing import Any

from pieces.config import PiecesConfig
from pieces.ports import (
    ActorContext,
    CacheLocator,
    FileRemover,
    PermissionChecker,
    ViewCompiler,
)
from pieces.stores.types import StoreBase
from pieces.types import PageMeta, Piece
from pieces.views.types import ViewEnvironment, ViewsError, join_path

logger = logging.getLogger(__name__)

EDITABLE = "cms.editable"


class PieceService:
    """
    Application service for pieces and page meta.

    Finds or creates them on demand, links pieces to the views that use them,
    and recompiles those views when the content changes.
    """

    def __init__(
        self,
        *,
        config: PiecesConfig,
        store: StoreBase,
        views: ViewCompiler,
        cache_locator: CacheLocator,
        files: FileRemover,
        permissions: PermissionChecker,
        actors: ActorContext,
    ):
        self.config = config
        self.store = store
        self.views = views
        self.cache_locator = cache_locator
        self.files = files
        self.permissions = permissions
        self.actors = actors

    def can_edit(self) -> bool:
        """Check if the current actor can edit CMS content."""
        # robots can't edit
        if not self.actors.has_actor():
            return False

        return self.permissions.allows(self.config.cms_permission())

    def find_piece(self, code: str) -> Piece | None:
        """Find a piece by code."""
        return self.store.find_piece(code)

    def find_meta(self, namespace: str, view: str, code: str) -> PageMeta | None:
        """Find page meta by namespace, view and code."""
        return self.store.find_meta(namespace, view, code)

    def get_piece(
        self,
        code: str,
        default_content: str = "",
        view: str = "",
        namespace: str = "",
    ) -> Piece:
        """
        Get a piece, creating it with the default content if it does not exist.

        In both cases the piece is linked to the given view and namespace.
        """
        piece = self.find_piece(code)
        if piece is None:
            piece = self.store.create_piece({"code": code})
            piece.content = default_content
            logger.debug("New piece code=%s", code)

        return self.ensure_location(piece, view, namespace)

    def get_meta(
        self,
        namespace: str,
        view: str,
        code: str,
        defaults: dict[str, Any] | None = None,
    ) -> PageMeta:
        """
        Get page meta, creating it from the defaults if it does not exist.

        Defaults are not applied to already existing page meta.
        """
        meta = self.find_meta(namespace, view, code)
        if meta is None:
            data = {**(defaults or {}), "namespace": namespace, "view": view, "code": code}
            meta = self.store.create_meta(data)
            self.store.save_meta(meta)

        return meta

    def ensure_location(self, piece: Piece, view: str, namespace: str) -> Piece:
        """
        Make sure the piece is linked to the view in the namespace.
        """
        if not piece.is_loaded():
            self.store.save_piece(piece)

        for location in piece.locations:
            if location.matches(view, namespace):
                return piece

        location = self.store.create_location(piece, view, namespace)
        self.store.save_location(location)
        piece.locations.append(location)
        logger.debug(
            "Linked piece code=%s to view=%s namespace=%s", piece.code, view, namespace
        )
        return piece

    def environment(self, editable: bool) -> ViewEnvironment:
        """
        The views environment for editors, or for everybody else.
        """
        return self.views.get_environment().with_dependency(EDITABLE, editable)

    def compile_view(self, namespace: str, view: str) -> None:
        """
        Compile the two versions of a view, for editors and for everybody else.

        Old compiled files are removed first.
        """
        path = join_path(namespace, view)

        for file in self.cache_locator.get_files(view, namespace):
            self.files.delete(file)

        # for editors
        self.views.with_environment(self.environment(True)).compile(path, force=True)

        # for everybody else
        self.views.with_environment(self.environment(False)).compile(path, force=True)

    def refresh_piece(self, piece: Piece) -> None:
        """
        Recompile all the views where the piece is used.

        Locations whose view can not be compiled any more are removed.
        """
        for location in list(piece.locations):
            try:
                self.compile_view(location.namespace, location.view)
            except ViewsError as error:
                logger.warning(
                    "Removing location of piece code=%s view=%s namespace=%s: %s",
                    piece.code,
                    location.view,
                    location.namespace,
                    error,
                )
                self.store.delete_location(location)
                piece.locations.remove(location)

    def refresh_meta(self, meta: PageMeta) -> None:
        """
        Recompile the view of the page meta.
        """
        self.compile_view(meta.namespace, meta.view)
