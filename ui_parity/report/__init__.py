"""Report aggregation and comparison."""

from .aggregator import RunReportBuilder, aggregate, compare, pass_rate

__all__ = ["RunReportBuilder", "aggregate", "compare", "pass_rate"]
