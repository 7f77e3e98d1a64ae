"""
Concurrent reconciliation engine.

Splits the target table into balanced row ranges, reconciles each range on
its own worker thread and waits for every worker on a completion barrier.

Components:
- partition: balanced, contiguous row ranges
- barrier: wait-group between coordinator and workers
- worker: per-range paging and comparison
- coordinator: one run end to end
"""

from .barrier import CompletionBarrier
from .coordinator import Coordinator, default_worker_count
from .counter import count_target_records
from .membership import contains_token, missing_values, split_tokens
from .models import RESULT_HEADER, ResultRow, RowRange, RunSummary, TargetRecord
from .partition import partition
from .queries import ReconciliationQueries, SourceSchema, TargetSchema
from .worker import ReconciliationWorker, WorkerState

__all__ = [
    "Coordinator",
    "CompletionBarrier",
    "ReconciliationWorker",
    "WorkerState",
    "ReconciliationQueries",
    "SourceSchema",
    "TargetSchema",
    "RowRange",
    "TargetRecord",
    "ResultRow",
    "RunSummary",
    "RESULT_HEADER",
    "partition",
    "count_target_records",
    "default_worker_count",
    "contains_token",
    "missing_values",
    "split_tokens",
]
