"""Transaction series: classification and occurrence materialization.

Mutation planning lives in :mod:`fintrack.series.mutations`.
"""

from fintrack.series.materializer import (
    Materialization,
    add_months,
    clamp_day,
    materialize,
    materialize_records,
    month_bounds,
    months_between,
)
from fintrack.series.resolver import ResolvedRecords, classify, resolve, resolve_all

__all__ = [
    "Materialization",
    "ResolvedRecords",
    "add_months",
    "clamp_day",
    "classify",
    "materialize",
    "materialize_records",
    "month_bounds",
    "months_between",
    "resolve",
    "resolve_all",
]
