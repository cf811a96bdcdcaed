"""Market summary subsystem for the crypto quote server.

Public API:
    TickerSummary           - Immutable enriched ticker snapshot dataclass
    SummaryStore            - Thread-safe, striped in-memory summary store
    ReferenceData           - Supported symbols and enrichment lookups
    SummaryResolver         - Read-through lookup that fills cache misses
    FeedCoordinator         - Per-symbol live feed supervision
    QuoteSource, TickerFeed - Abstract interfaces for exchange collaborators
    create_exchange         - Factory that selects HitBTC or the simulator
    create_currency_router  - FastAPI router factory for the /currency endpoints
"""

from .cache import SummaryStore
from .coordinator import FeedCoordinator, FeedState
from .errors import (
    DecodeError,
    EmptyCache,
    QuoteServiceError,
    SubscriptionFailed,
    UpstreamUnavailable,
)
from .factory import create_exchange
from .interface import QuoteSource, TickerFeed
from .models import TickerSummary
from .reference import ReferenceData, load_reference_data
from .resolver import SummaryResolver
from .routes import create_currency_router

__all__ = [
    "TickerSummary",
    "SummaryStore",
    "ReferenceData",
    "load_reference_data",
    "SummaryResolver",
    "FeedCoordinator",
    "FeedState",
    "QuoteSource",
    "TickerFeed",
    "create_exchange",
    "create_currency_router",
    "QuoteServiceError",
    "UpstreamUnavailable",
    "SubscriptionFailed",
    "DecodeError",
    "EmptyCache",
]
