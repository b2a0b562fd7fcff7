from fastapi import HTTPException

from core.config import HISTORICAL_TIME_RANGES


def validate_time_range(time_range: str) -> None:
    if time_range not in HISTORICAL_TIME_RANGES:
        raise HTTPException(
            status_code=422,
            detail=f"time_range must be one of: {', '.join(HISTORICAL_TIME_RANGES)}."
        )
