"""External scraper ingest endpoint.

Brand scrapers that run outside this process (a browser host, a vendor
feed job) POST their raw products here. The endpoint authenticates via a
shared API key and then runs the batch through the same pipeline as an
internal scrape run:

  1. Resolve the brand by name (must be active)
  2. Map attributes, convert units, validate
  3. Expand into region rows
  4. Detect changes / insert new rows and record versions

Security model
--------------
A single pre-shared key (``INGEST_API_KEY`` env var) is used. It travels in
the JSON body so a scraper only needs a plain HTTP POST. The key is
compared with ``secrets.compare_digest`` to avoid timing-oracle attacks.
"""

import secrets

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from brightchoice.config import settings
from brightchoice.dependencies import get_db
from brightchoice.schemas.ingest import IngestRequest, IngestResponse, IngestStats
from brightchoice.scrapers.scraper_service import ScraperService
from brightchoice.services.spec_store import SQLAlchemySpecStore

router = APIRouter()
logger = structlog.get_logger(__name__)


def _verify_api_key(submitted_key: str) -> None:
    """Raise HTTP 403 if the submitted key does not match INGEST_API_KEY.

    Args:
        submitted_key: The api_key field from the request body.

    Raises:
        HTTPException: 403 Forbidden when the key is not configured on the
            server or does not match.
    """
    configured_key: str = settings.INGEST_API_KEY

    # An unconfigured key disables the endpoint instead of opening it
    if not configured_key:
        logger.warning("ingest_api_key_not_configured")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Ingest endpoint is disabled (INGEST_API_KEY not configured)",
        )

    if not secrets.compare_digest(submitted_key.encode(), configured_key.encode()):
        logger.warning("ingest_api_key_rejected")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )


@router.post(
    "/products",
    response_model=IngestResponse,
    status_code=status.HTTP_200_OK,
    summary="Ingest raw products from an external brand scraper",
    responses={
        403: {"description": "API key missing or incorrect"},
        422: {"description": "Unknown or inactive brand, or invalid request body"},
    },
)
async def ingest_products(
    body: IngestRequest,
    db: AsyncSession = Depends(get_db),
) -> IngestResponse:
    """Accept a batch of raw products for one brand.

    Each product is individually error-isolated; a failure on one item does
    not abort the rest of the batch. Invalid products (missing watts or
    lumens) are skipped and counted in ``errors``.
    """
    _verify_api_key(body.api_key)

    log = logger.bind(brand=body.brand, received=len(body.products))
    log.info("ingest_request_received")

    store = SQLAlchemySpecStore(db)
    brands = await store.list_active_brands(body.brand)
    if not brands:
        log.warning("ingest_brand_unknown")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Brand not found or inactive: {body.brand}",
        )

    service = ScraperService(store)
    result = await service.process_brand(
        brands[0],
        raw_products=[item.to_raw_product() for item in body.products],
    )

    stats = IngestStats(received=len(body.products), **result.to_dict())
    log.info("ingest_complete", **result.to_dict())

    return IngestResponse(status="success", stats=stats)
