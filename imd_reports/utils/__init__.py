from .audit import log_audit, audit_trail

from .date_filters import (
    DateFilter,
    ReportFilters,
    parse_date,
    utc_now,
    as_utc,
)

from .rounding import round_half_up, percentage

__all__ = [
    # Audit
    "log_audit",
    "audit_trail",
    # Date filters
    "DateFilter",
    "ReportFilters",
    "parse_date",
    "utc_now",
    "as_utc",
    # Rounding
    "round_half_up",
    "percentage",
]
