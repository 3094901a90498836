from .aggregates import (
    GROUP_KINDS,
    AggregateIndex,
    GenreAggregate,
    PersonAggregate,
    SummaryStats,
    YearAggregate,
)
from .movie import (
    UNKNOWN_COUNTRY,
    UNKNOWN_DIRECTOR,
    EnrichedMovie,
    EnrichmentProgress,
    RawWatchRecord,
    parse_watch_date,
)

__all__ = [
    "AggregateIndex",
    "EnrichedMovie",
    "EnrichmentProgress",
    "GROUP_KINDS",
    "GenreAggregate",
    "PersonAggregate",
    "RawWatchRecord",
    "SummaryStats",
    "UNKNOWN_COUNTRY",
    "UNKNOWN_DIRECTOR",
    "YearAggregate",
    "parse_watch_date",
]
