"""Reconcilers for functions, aliases and version retention."""

from .alias import AliasReconciler
from .function import FunctionReconciler, FunctionReconciliation
from .retention import PruneResult, RetentionPruner, select_for_deletion

__all__ = [
    "AliasReconciler",
    "FunctionReconciler",
    "FunctionReconciliation",
    "PruneResult",
    "RetentionPruner",
    "select_for_deletion",
]
