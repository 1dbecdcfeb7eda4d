import logging
import random
import traceback
from pathlib import Path

import fastapi
import fastapi.middleware.cors
import fastapi.responses
from pydantic import BaseModel, Field

from pieces.config import Config
from pieces.files import FileManager
from pieces.processor import PiecesProcessor
from pieces.security import (
    ContextActorProvider,
    RolePermissions,
    TokenAuthenticator,
    actor_var,
)
from pieces.services import PieceService
from pieces.setup import trace_id_var
from pieces.stores.db import DbStore
from pieces.views.cache import ViewCacheLocator
from pieces.views.manager import ViewManager
from pieces.views.types import ViewNotFoundError, ViewsError, join_path

logger = logging.getLogger(__name__)


class PieceUpdate(BaseModel):
    content: str = Field(description="New content of the piece.")


class MetaUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    keywords: str | None = None
    html: str | None = Field(None, description="Extra markup for the page head.")


def create_piece_service(config: Config) -> PieceService:
    """
    Create a piece service with database storage and jinja2 views.
    """
    files = FileManager()
    cache_locator = ViewCacheLocator(
        config.views.cache_directory, config.views.extension
    )
    views = ViewManager(config.views, files, cache_locator)
    actors = ContextActorProvider()
    service = PieceService(
        config=config.pieces,
        store=DbStore(config.database),
        views=views,
        cache_locator=cache_locator,
        files=files,
        permissions=RolePermissions(config.security, actors),
        actors=actors,
    )
    views.add_processor(PiecesProcessor(service))
    return service


def create_app(config: Config, service: PieceService | None = None) -> fastapi.FastAPI:
    """
    Create the FastAPI app.
    """
    app = fastapi.FastAPI(
        title="Pieces",
        description="Editable pieces of content and page meta",
    )
    service = service or create_piece_service(config)
    authenticator = TokenAuthenticator(config.security)
    app.state.service = service

    app.add_middleware(
        fastapi.middleware.cors.CORSMiddleware,
        allow_origins=config.server.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def set_request_context(request: fastapi.Request, call_next):
        def trace_id():
            return f"{random.getrandbits(64):016x}"

        trace_token = trace_id_var.set(request.headers.get("x-trace-id") or trace_id())
        actor_token = actor_var.set(
            authenticator.authenticate_header(request.headers.get("authorization"))
        )
        try:
            return await call_next(request)
        finally:
            actor_var.reset(actor_token)
            trace_id_var.reset(trace_token)

    def forbidden() -> fastapi.responses.JSONResponse:
        return fastapi.responses.JSONResponse(
            {"details": "Not allowed to edit content"}, status_code=403
        )

    def not_found(what: str) -> fastapi.responses.JSONResponse:
        return fastapi.responses.JSONResponse(
            {"details": f"{what} not found"}, status_code=404
        )

    def views_error(error: ViewsError) -> fastapi.responses.Response:
        logger.error("View error: %s", error)
        if config.debug:
            return fastapi.responses.Response(
                content=f"Internal Server Error: {traceback.format_exc()}",
                status_code=500,
            )
        return fastapi.responses.Response(
            content="Internal Server Error", status_code=500
        )

    @app.get("/api/v1/piece/")
    def list_pieces(offset: int = 0, limit: int = 10):
        pieces = service.store.list_pieces(offset=offset, limit=limit)
        return fastapi.responses.JSONResponse(pieces.to_dict())

    @app.get("/api/v1/piece/{code}")
    def read_piece(code: str):
        piece = service.find_piece(code)
        if not piece:
            return not_found("Piece")
        return fastapi.responses.JSONResponse(piece.to_dict())

    @app.post("/api/v1/piece/{code}")
    def save_piece(code: str, data: PieceUpdate):
        """
        Change the piece content, and recompile the views using it.
        """
        if not service.can_edit():
            return forbidden()
        piece = service.find_piece(code)
        if not piece:
            return not_found("Piece")

        piece.content = data.content
        service.store.save_piece(piece)
        service.refresh_piece(piece)
        return fastapi.responses.JSONResponse(piece.to_dict())

    @app.get("/api/v1/meta/{namespace}/{view:path}/{code}")
    def read_meta(namespace: str, view: str, code: str):
        meta = service.find_meta(namespace, view, code)
        if not meta:
            return not_found("Page meta")
        return fastapi.responses.JSONResponse(meta.to_dict())

    @app.post("/api/v1/meta/{namespace}/{view:path}/{code}")
    def save_meta(namespace: str, view: str, code: str, data: MetaUpdate):
        """
        Change the page meta, and recompile its view.
        """
        if not service.can_edit():
            return forbidden()
        meta = service.find_meta(namespace, view, code)
        if not meta:
            return not_found("Page meta")

        meta.update(data.model_dump(exclude_none=True))
        service.store.save_meta(meta)
        try:
            service.refresh_meta(meta)
        except ViewsError as error:
            return views_error(error)
        return fastapi.responses.JSONResponse(meta.to_dict())

    @app.get("/api/v1/render/{namespace}/{view:path}")
    def render_view(namespace: str, view: str):
        """
        Render a view. Editors get the editable version.
        """
        if ".." in view or Path(view).name.startswith("_"):
            return fastapi.responses.Response(content="Forbidden", status_code=403)

        views = service.views.with_environment(service.environment(service.can_edit()))
        try:
            html = views.render(join_path(namespace, view))
        except ViewNotFoundError:
            return not_found("View")
        except ViewsError as error:
            return views_error(error)
        return fastapi.responses.HTMLResponse(content=html)

    return app
