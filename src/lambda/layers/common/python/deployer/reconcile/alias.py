from __future__ import annotations

from ..errors import ConfigurationError
from ..models.records import LATEST
from ..store.contracts import FunctionStore
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AliasReconciler:
    """Points a named alias at a published version, creating it if needed.

    The repoint is unconditional; the last writer wins.
    """

    def __init__(self, store: FunctionStore):
        self._store = store

    def reconcile(self, function_name: str, alias_name: str, version_id: str) -> str:
        if not version_id or version_id == LATEST:
            raise ConfigurationError(f"alias {alias_name} must target a published version, got {version_id!r}")

        current = self._store.get_alias(function_name, alias_name)
        if current is None:
            alias = self._store.create_alias(function_name, alias_name, version_id)
            action = "created"
        else:
            alias = self._store.update_alias(function_name, alias_name, version_id)
            action = "updated"

        logger.info(
            "Alias %s",
            action,
            extra={
                "function_name": function_name,
                "alias": alias_name,
                "version": version_id,
                "previous_version": current.target_version_id if current else None,
            },
        )
        return alias.arn or f"{function_name}:{alias_name}"
