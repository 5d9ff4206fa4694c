# backend/carefind/main.py
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from carefind.core.config import Settings, settings as default_settings
from carefind.core.exceptions import CatalogError, InvalidRequest
from carefind.core.logging import configure_logging
from carefind.db.base import CatalogStore
from carefind.db.mongodb import connect_store
from carefind.models import BranchDetail, BranchOffer, Provider, SearchResponse, ServiceDetail, Suggestion
from carefind.services.catalog import CatalogService
from carefind.services.search import CatalogSearchService, build_filters, parse_int
from carefind.services.suggestions import SuggestionService

logger = logging.getLogger(__name__)


def create_app(store: Optional[CatalogStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API. The store is created once here (or injected) and shared by all requests."""
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store", None) is None:
            app.state.store = connect_store(settings)
        logger.info("catalog store ready (mode=%s)", app.state.store.mode)
        yield

    # ---------- FastAPI app & CORS ----------
    app = FastAPI(title="CareFind Catalog Search API", version="1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store

    origins: List[str] = list({
        settings.ALLOWED_ORIGIN,
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    })
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    _register_routes(app)
    return app


# ---------- Dependencies ----------
def get_store(request: Request) -> CatalogStore:
    return request.app.state.store


def get_search_service(request: Request, store: CatalogStore = Depends(get_store)) -> CatalogSearchService:
    return CatalogSearchService(store, request.app.state.settings)


def get_suggestion_service(request: Request, store: CatalogStore = Depends(get_store)) -> SuggestionService:
    return SuggestionService(store, request.app.state.settings)


def get_catalog_service(store: CatalogStore = Depends(get_store)) -> CatalogService:
    return CatalogService(store)


# ---------- Routes ----------
def _register_routes(app: FastAPI) -> None:
    @app.get("/")
    def root():
        return {"ok": True, "message": "CareFind Catalog Search API", "try": ["/health", "/docs"]}

    @app.get("/health")
    def health(store: CatalogStore = Depends(get_store)):
        """Report API and store status + mode."""
        return {"status": "ok", "db": store.ping(), "mode": store.mode}

    # numeric params come in as raw strings; a malformed value drops that filter
    @app.get("/api/search/services", response_model=SearchResponse)
    def search_services(
        q: Optional[str] = None,
        district: Optional[str] = None,
        city: Optional[str] = None,
        provider_id: Optional[str] = None,
        min_price: Optional[str] = None,
        max_price: Optional[str] = None,
        service_type: Optional[str] = None,
        limit: Optional[str] = None,
        service: CatalogSearchService = Depends(get_search_service),
    ):
        filters = build_filters(provider_id, service_type, min_price, max_price)
        return service.search(q, district=district, city=city, filters=filters,
                              limit=parse_int("limit", limit))

    @app.get("/api/search/suggestions", response_model=List[Suggestion])
    def search_suggestions(
        q: Optional[str] = None,
        service: SuggestionService = Depends(get_suggestion_service),
    ):
        return service.suggest(q)

    @app.get("/api/search/branches", response_model=List[BranchOffer])
    def search_branches(
        service_id: Optional[str] = None,
        district: Optional[str] = None,
        city: Optional[str] = None,
        service: CatalogService = Depends(get_catalog_service),
    ):
        sid = parse_int("service_id", service_id)
        if sid is None:
            raise InvalidRequest("service_id is required")
        return service.branches_for_service(sid, district=district, city=city)

    @app.get("/api/providers", response_model=List[Provider])
    def list_providers(service: CatalogService = Depends(get_catalog_service)):
        return service.providers()

    @app.get("/api/services/{service_id}", response_model=ServiceDetail)
    def service_detail(service_id: int, service: CatalogService = Depends(get_catalog_service)):
        return service.service_detail(service_id)

    @app.get("/api/services/{service_id}/branches", response_model=List[BranchOffer])
    def service_branches(
        service_id: int,
        district: Optional[str] = None,
        city: Optional[str] = None,
        service: CatalogService = Depends(get_catalog_service),
    ):
        return service.branches_for_service(service_id, district=district, city=city)

    @app.get("/api/branches/{branch_id}", response_model=BranchDetail)
    def branch_detail(branch_id: int, service: CatalogService = Depends(get_catalog_service)):
        """Branch with its provider and the active services it offers."""
        return service.branch_detail(branch_id)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=default_settings.API_PORT)
