"""Retention pruning of unaliased function versions.

Versions referenced by any alias (as target or routing weight) and
``$LATEST`` are never candidates. Candidates are ordered by their integer
value; the newest ``max_unaliased_versions`` are kept as a rollback buffer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Set

from ..errors import ConfigurationError, DeletionPartialFailure
from ..models.records import Alias, Version
from ..store.contracts import FunctionStore
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PruneResult:
    deleted: FrozenSet[str] = field(default_factory=frozenset)
    retained: List[str] = field(default_factory=list)


def referenced_versions(aliases: Iterable[Alias]) -> Set[str]:
    referenced: Set[str] = set()
    for alias in aliases:
        referenced |= alias.referenced_version_ids
    return referenced


def select_for_deletion(
    versions: Iterable[Version], aliases: Iterable[Alias], max_unaliased_versions: int
) -> List[str]:
    """Return the version ids to delete, oldest first."""
    if max_unaliased_versions < 0:
        raise ConfigurationError(f"max unaliased versions must be >= 0, got {max_unaliased_versions}")

    referenced = referenced_versions(aliases)
    candidates: List[Version] = []
    for version in versions:
        if version.is_latest or version.id in referenced:
            continue
        if version.number is None:
            logger.warning("Skipping non-numeric version id", extra={"version": version.id})
            continue
        candidates.append(version)

    candidates.sort(key=lambda v: v.number)
    excess = len(candidates) - max_unaliased_versions
    if excess <= 0:
        return []
    return [v.id for v in candidates[:excess]]


class RetentionPruner:
    def __init__(self, store: FunctionStore):
        self._store = store

    def prune(self, function_name: str, max_unaliased_versions: int) -> PruneResult:
        versions = self._store.list_versions(function_name)
        aliases = self._store.list_aliases(function_name)
        selected = select_for_deletion(versions, aliases, max_unaliased_versions)
        selected_set = set(selected)
        retained = [v.id for v in versions if not v.is_latest and v.id not in selected_set]

        if not selected:
            logger.info(
                "No versions to prune",
                extra={"function_name": function_name, "max_unaliased_versions": max_unaliased_versions},
            )
            return PruneResult(deleted=frozenset(), retained=retained)

        deleted: Set[str] = set()
        failures: Dict[str, Exception] = {}
        for version_id in selected:
            try:
                self._store.delete_version(function_name, version_id)
            except Exception as exc:  # keep pruning the rest, report in aggregate
                logger.warning(
                    "Failed to delete version",
                    extra={"function_name": function_name, "version": version_id, "error": str(exc)},
                )
                failures[version_id] = exc
                continue
            deleted.add(version_id)

        logger.info(
            "Pruned versions",
            extra={
                "function_name": function_name,
                "deleted": sorted(deleted, key=int),
                "failed": sorted(failures, key=int),
            },
        )
        if failures:
            raise DeletionPartialFailure(deleted, failures)
        return PruneResult(deleted=frozenset(deleted), retained=retained)
