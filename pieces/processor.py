"""
Compile time helpers to use pieces and page meta from views.

In a view:

    [[ piece("hero-banner", "<h1>Welcome</h1>") ]]
    <title>[[ meta("page", title="Home").title ]]</title>
    [% if cms.editable %]<script src="/editor.js"></script>[% endif %]
"""

import dataclasses
import html
import logging
import re
from typing import Any

from pieces.services import EDITABLE, PieceService
from pieces.types import PageMeta
from pieces.views.types import ViewEnvironment

logger = logging.getLogger(__name__)

RAW_END = re.compile(r"\{%[-+]?\s*endraw\s*[-+]?%\}")


class PiecesProcessor:
    """
    View processor giving `piece()` and `meta()` to the compile pass.

    Using a piece from a view links them, so the view is recompiled when the
    piece changes.
    """

    def __init__(self, service: PieceService):
        self.service = service

    def __call__(
        self, namespace: str, view: str, environment: ViewEnvironment
    ) -> dict[str, Any]:
        editable = bool(environment.get(EDITABLE, False))

        def piece(code: str, default: str = "") -> str:
            content = self.service.get_piece(code, default, view, namespace).content
            if not editable:
                return as_literal(content)
            return render_editable(code, content)

        def meta(code: str, **defaults: Any) -> PageMeta:
            page_meta = self.service.get_meta(namespace, view, code, defaults)
            return literal_meta(page_meta)

        return {"piece": piece, "meta": meta}


def as_literal(content: str) -> str:
    """
    Quote piece content so the runtime pass outputs it as is.

    The content goes into `{% raw %}` blocks. An `{% endraw %}` inside the
    content is written as a string expression between two blocks.
    """
    parts = []
    last = 0
    for match in RAW_END.finditer(content):
        parts.append(raw_block(content[last : match.start()]))
        parts.append("{{ %r }}" % match.group(0))
        last = match.end()
    parts.append(raw_block(content[last:]))
    return "".join(parts)


def literal_meta(meta: PageMeta) -> PageMeta:
    """
    Copy of the page meta with its editable fields quoted for the runtime pass.
    """
    return dataclasses.replace(
        meta, **{name: as_literal(getattr(meta, name)) for name in meta.editable_fields()}
    )


def raw_block(text: str) -> str:
    if not text:
        return ""
    return "{% raw %}" + text + "{% endraw %}"


def render_editable(code: str, content: str) -> str:
    """
    Wrap the piece content with the markup the editor looks for.
    """
    return (
        f'<div class="cms-piece" data-piece="{html.escape(code, quote=True)}">'
        f"{as_literal(content)}</div>"
    )
