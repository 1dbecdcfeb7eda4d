import logging
from typing import Any

from pieces.types import PageMeta, Piece, PieceListResult, PieceLocation


logger = logging.getLogger(__name__)


class StoreBase:
    """
    Base class for the pieces persistence.

    create_* methods only build the objects; they are stored with save_*.
    """

    url: str

    def __init__(self, url: str):
        self.url = url

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} url={self.url}>"

    def find_piece(self, code: str) -> Piece | None:
        """
        Find a piece by code, with its locations.
        """
        raise NotImplementedError(
            f"find_piece not implemented in {self.__class__.__name__}"
        )

    def create_piece(self, fields: dict[str, Any]) -> Piece:
        """
        Build a new piece, not stored yet.
        """
        return Piece.from_dict(fields)

    def save_piece(self, piece: Piece) -> Piece:
        """
        Insert or update the piece. After this the piece is loaded.
        """
        raise NotImplementedError(
            f"save_piece not implemented in {self.__class__.__name__}"
        )

    def list_pieces(self, *, offset: int = 0, limit: int = 10) -> PieceListResult:
        """
        Get a list of pieces, ordered by code.
        """
        return PieceListResult(count=0, results=[])

    def create_location(self, piece: Piece, view: str, namespace: str) -> PieceLocation:
        """
        Build a new location for a stored piece.
        """
        if not piece.is_loaded():
            raise ValueError(f"Piece code={piece.code} must be saved before linking it")
        return PieceLocation(view=view, namespace=namespace, piece_id=piece.id)

    def save_location(self, location: PieceLocation) -> PieceLocation:
        raise NotImplementedError(
            f"save_location not implemented in {self.__class__.__name__}"
        )

    def delete_location(self, location: PieceLocation) -> bool:
        raise NotImplementedError(
            f"delete_location not implemented in {self.__class__.__name__}"
        )

    def find_meta(self, namespace: str, view: str, code: str) -> PageMeta | None:
        """
        Find page meta by its full key.
        """
        raise NotImplementedError(
            f"find_meta not implemented in {self.__class__.__name__}"
        )

    def create_meta(self, fields: dict[str, Any]) -> PageMeta:
        """
        Build new page meta, not stored yet.
        """
        return PageMeta.from_dict(fields)

    def save_meta(self, meta: PageMeta) -> PageMeta:
        raise NotImplementedError(
            f"save_meta not implemented in {self.__class__.__name__}"
        )
