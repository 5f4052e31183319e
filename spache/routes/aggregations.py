"""Aggregation routes over cached close approaches."""

from datetime import date

from fastapi import APIRouter, Query, Request

from spache.errors import ValidationError
from spache.services.aggregations import CloseApproachAggregationsService
from spache.services.dates import last_day_of_month, to_utc_midnight

router = APIRouter(prefix="/aggregations")


@router.get("/largest/monthly")
async def largest_monthly(
    request: Request,
    from_: date | None = Query(None, alias="from"),
    to: date | None = Query(None),
) -> dict:
    """Largest object per ISO month; `to` defaults to the end of `from`'s month."""
    if from_ is None:
        raise ValidationError("Required parameter `from` not provided.")
    start = to_utc_midnight(from_)
    end = to_utc_midnight(to) if to else last_day_of_month(start)
    if end < start:
        raise ValidationError("`to` must not be before `from`.")

    service: CloseApproachAggregationsService = request.app.state.aggregations_service
    return await service.get_monthly_largest(start, end)
