from .override_policy import clamp, effective_score, validate_adjustment
from .catalog_store import CatalogStore
from .ranking import RankingEngine, ranking_key, default_limit

__all__ = [
    "clamp",
    "effective_score",
    "validate_adjustment",
    "CatalogStore",
    "RankingEngine",
    "ranking_key",
    "default_limit",
]
