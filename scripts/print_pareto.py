"""Print the production Pareto table for the configured spreadsheet."""

import sys

from config.settings import settings
from cost_pareto.discovery.cost_aggregator import aggregate_partitions
from cost_pareto.discovery.pareto_ranker import ALL, build_pareto_view
from cost_pareto.discovery.report_formatter import format_pareto_table
from cost_pareto.ingestion.sheets_fetch import SheetSourceError, fetch_partitions


def main(partition: str = ALL) -> int:
    try:
        partitions = fetch_partitions()
    except SheetSourceError as exc:
        print(f"[print_pareto] {exc}", file=sys.stderr)
        return 1

    products = aggregate_partitions(partitions, settings.aggregation_granularity)
    view = build_pareto_view(
        products,
        partition=partition,
        a_threshold=settings.core_threshold_pct,
        b_threshold=settings.b_threshold_pct,
    )
    print(format_pareto_table(view))
    return 0


if __name__ == "__main__":
    sys.exit(main(*sys.argv[1:2]))
