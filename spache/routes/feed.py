"""NEO feed proxy route, mirroring the upstream `/neo/rest/v1/feed` shape."""

from datetime import date

from fastapi import APIRouter, Query, Request

from spache.errors import ValidationError
from spache.services.close_approach import FEED_ROUTE_PREFIX, CloseApproachService
from spache.services.dates import add_days, to_utc_midnight
from spache.services.neo_api import FEED_PATH

router = APIRouter(prefix=FEED_ROUTE_PREFIX)


@router.get(FEED_PATH)
async def feed(
    request: Request,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
) -> dict:
    """Close approaches between start_date and end_date (default: a week on)."""
    if start_date is None:
        raise ValidationError("Required parameter `start_date` not provided.")
    start = to_utc_midnight(start_date)
    end = to_utc_midnight(end_date) if end_date else add_days(start, 7)
    if end < start:
        raise ValidationError("`end_date` must not be before `start_date`.")

    service: CloseApproachService = request.app.state.close_approach_service
    return await service.query_by_date_range(start, end)
