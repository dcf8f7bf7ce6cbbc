"""Catalog routes: health, service catalog and the maallem directory."""

from fastapi import APIRouter, Request
from loguru import logger

from promaallem.domain.protocols import IMarketplaceStore
from promaallem.presentation.schemas import ProviderSummaryResponse, ServiceResponse, error_responses

router = APIRouter(tags=["catalog"])


@router.get("/health")
async def health():
    """Simple liveness / readiness check."""
    return {"status": "ok"}


@router.get("/api/services", response_model=list[ServiceResponse], responses=error_responses(500))
async def list_services(request: Request):
    """List the whole service catalog."""
    store: IMarketplaceStore = request.app.state.store
    services = await store.list_services()
    return [
        ServiceResponse(id=s.id, name=s.name, description=s.description, base_price=s.base_price)
        for s in services
    ]


@router.get(
    "/api/maallems/nearby",
    response_model=list[ProviderSummaryResponse],
    responses=error_responses(500),
)
async def nearby_maallems(request: Request, city: str | None = None):
    """Available maallems, optionally filtered by city (case-insensitive substring)."""
    store: IMarketplaceStore = request.app.state.store
    providers = await store.list_available_providers(city=city)

    logger.info("GET /api/maallems/nearby | city={} results={}", city, len(providers))
    return [
        ProviderSummaryResponse(
            id=p.id,
            full_name=p.full_name,
            role=p.role,
            city=p.city,
            rating=p.rating,
            avatar_url=p.avatar_url,
        )
        for p in providers
    ]
