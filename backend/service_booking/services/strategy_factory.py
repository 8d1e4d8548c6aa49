"""
Interval index strategy factory.
Configures which overlap-prevention strategy the booking engine uses.
"""

from typing import Optional

from service_booking.core.config import get_settings
from service_booking.core.logging import get_logger
from service_booking.services.interfaces.exclusion_index import ExclusionConstraintIntervalIndex
from service_booking.services.interfaces.interval_index import IntervalIndex
from service_booking.services.interval_index import LockingIntervalIndex

logger = get_logger(__name__)

STRATEGIES = {
    "locking": LockingIntervalIndex,
    "exclusion": ExclusionConstraintIntervalIndex,
}

# Strategies whose guarantee lives in a PostgreSQL-only constraint
POSTGRESQL_ONLY = {"exclusion"}


def get_interval_index_strategy(name: Optional[str] = None, database_url: Optional[str] = None) -> IntervalIndex:
    """
    Build the configured interval index.

    - locking (default): works on any backend, serializes per provider
    - exclusion: PostgreSQL only, needs the EXCLUDE constraint from the migration

    Selected by the INTERVAL_INDEX_STRATEGY setting unless ``name`` is given.
    Asking for exclusion on any other database falls back to locking, since
    without the constraint nothing would stop a racing overlap.
    """
    settings = get_settings()
    name = (name or settings.INTERVAL_INDEX_STRATEGY).lower()
    database_url = database_url or settings.DATABASE_URL
    if name not in STRATEGIES:
        raise ValueError(f"Unknown interval index strategy: {name!r}")

    if name in POSTGRESQL_ONLY and not database_url.startswith("postgresql"):
        logger.warning(
            "interval_index_strategy_unsupported",
            requested=name,
            backend=database_url.split(":", 1)[0],
            using="locking",
        )
        name = "locking"
    return STRATEGIES[name]()


# Singleton instance
_index: Optional[IntervalIndex] = None


def get_interval_index() -> IntervalIndex:
    """Get interval index singleton."""
    global _index
    if _index is None:
        _index = get_interval_index_strategy()
    return _index
