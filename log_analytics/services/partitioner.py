"""
Partitioner - groups records by status code for the partitioned output layout
"""

from typing import Dict, Iterable, List

from log_analytics.models.data_models import Partitions, Record


def partition_by_status(records: Iterable[Record]) -> Partitions:
    """
    Map status code -> records with that status.
    Keys are ascending; each partition keeps input order.
    """
    groups: Dict[int, List[Record]] = {}
    for r in records:
        groups.setdefault(r.status, []).append(r)
    return dict(sorted(groups.items()))
