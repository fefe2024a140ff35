"""Client read endpoints under /api/clients (list, quick search, detail)."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response, pagination_meta
from core.config import AgencyConfig
from utils.pagination import clamp_page, page_of


def create_clients_router(services: dict, config: AgencyConfig) -> APIRouter:
    router = APIRouter()

    client_svc = services["client"]

    @router.get("/clients")
    async def list_clients(
        request: Request,
        search: str | None = Query(None),
        page: int = Query(1, ge=1),
        limit: int | None = Query(None, ge=1, le=500),
    ):
        limit = limit or config.page_size
        total = client_svc.count(search)
        page = clamp_page(page, total, limit)
        clients = page_of(
            client_svc.list_all(limit, (page - 1) * limit, search),
            page, limit, total, config.max_visible_pages,
        )
        return success_response(
            {
                "clients": [c.model_dump(mode="json") for c in clients.items],
                "pagination": pagination_meta(clients),
            },
            request.state.request_id,
        ).model_dump(mode="json")

    @router.get("/clients/search")
    async def search_clients(
        request: Request,
        q: str | None = Query(None),
        limit: int = Query(10, ge=1, le=100),
    ):
        if not q or not q.strip():
            raise ValueError('Query parameter "q" is required')
        clients = client_svc.search(q, limit)
        return success_response(
            [c.model_dump(mode="json") for c in clients], request.state.request_id
        ).model_dump(mode="json")

    @router.get("/clients/{id}")
    async def get_client(request: Request, id: UUID):
        client = client_svc.get_by_id(id)
        if client is None:
            raise ValueError(f"Client {id} not found")
        return success_response(
            client.model_dump(mode="json"), request.state.request_id
        ).model_dump(mode="json")

    return router
