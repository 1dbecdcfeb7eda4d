"""
Types for the pieces CMS.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Self

logger = logging.getLogger(__name__)


@dataclass
class PieceLocation:
    """
    A place where a piece is used: a view inside a namespace.
    """

    view: str
    namespace: str
    piece_id: int | None = None
    id: int | None = None

    def is_loaded(self) -> bool:
        return self.id is not None

    def matches(self, view: str, namespace: str) -> bool:
        return self.view == view and self.namespace == namespace

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        return cls(
            id=data.get("id"),
            piece_id=data.get("piece_id"),
            view=data["view"],
            namespace=data["namespace"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "piece_id": self.piece_id,
            "view": self.view,
            "namespace": self.namespace,
        }


@dataclass
class Piece:
    """
    A named block of content that editors can change.

    The code is unique. Locations are loaded together with the piece.
    """

    code: str
    content: str = ""
    id: int | None = None
    locations: list[PieceLocation] = field(default_factory=list)

    def is_loaded(self) -> bool:
        """
        Check if the piece is already stored, and so has an id.
        """
        return self.id is not None

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """
        Load a piece from a dictionary.
        """
        return cls(
            id=data.get("id"),
            code=data["code"],
            content=data.get("content") or "",
            locations=[
                PieceLocation.from_dict(location)
                for location in data.get("locations", [])
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the piece to a JSON-serializable dictionary.
        """
        return {
            "id": self.id,
            "code": self.code,
            "content": self.content,
            "locations": [location.to_dict() for location in self.locations],
        }


@dataclass
class PageMeta:
    """
    Metadata for a page, keyed by namespace, view and code.

    The key never changes once created, the rest of fields are editable.
    """

    namespace: str
    view: str
    code: str
    title: str = ""
    description: str = ""
    keywords: str = ""
    html: str = ""
    id: int | None = None

    KEY_FIELDS = ("namespace", "view", "code")

    def is_loaded(self) -> bool:
        return self.id is not None

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def editable_fields(cls) -> list[str]:
        return [
            name
            for name in cls.field_names()
            if name not in cls.KEY_FIELDS and name != "id"
        ]

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """
        Load page meta from a dictionary.

        Unknown keys are ignored, and editable fields set to None are empty.
        """
        known = cls.field_names()
        unknown = [key for key in data if key not in known]
        if unknown:
            logger.warning("Ignoring unknown page meta fields=%s", unknown)
        editable = cls.editable_fields()
        values = {key: value for key, value in data.items() if key in known}
        for key in editable:
            if key in values and values[key] is None:
                values[key] = ""
        return cls(**values)

    def update(self, data: dict[str, Any]) -> None:
        """
        Update the editable fields. Key fields can not be changed.
        """
        for key, value in data.items():
            if key not in self.editable_fields():
                raise ValueError(f"Page meta field {key} can not be updated")
            setattr(self, key, value if value is not None else "")

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the page meta to a JSON-serializable dictionary.
        """
        return {name: getattr(self, name) for name in self.field_names()}


@dataclass
class Actor:
    """
    Whoever is doing the current request.
    """

    name: str
    roles: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        return cls(name=data["name"], roles=data.get("roles", []))


@dataclass
class PieceListResult:
    """
    A page of pieces, with the total count in the store.
    """

    count: int
    results: list[Piece]

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "results": [piece.to_dict() for piece in self.results],
        }
