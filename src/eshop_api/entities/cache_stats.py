"""Cache statistics domain entity."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class CacheStatsEntity:
    """Snapshot of cache store counters.

    Attributes:
        keys: Number of live entries
        hits: Lookups that found a live entry since the last full clear
        misses: Lookups that found nothing since the last full clear
        ksize: Total characters across live keys
        vsize: Total characters across serialized live values
    """

    keys: int = 0
    hits: int = 0
    misses: int = 0
    ksize: int = 0
    vsize: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)
