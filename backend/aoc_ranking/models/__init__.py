from .catalog import (
    WineRecord,
    OverrideRecord,
    RankedWine,
    WineFilter,
    AppellationCount,
    ImportRecord,
)
from .response import (
    RankedWineResponse,
    AppellationResponse,
    RefreshStatusResponse,
    OverrideRequest,
    OverrideResponse,
    ImportResponse,
    RefreshResponse,
)

__all__ = [
    "WineRecord",
    "OverrideRecord",
    "RankedWine",
    "WineFilter",
    "AppellationCount",
    "ImportRecord",
    "RankedWineResponse",
    "AppellationResponse",
    "RefreshStatusResponse",
    "OverrideRequest",
    "OverrideResponse",
    "ImportResponse",
    "RefreshResponse",
]
