"""Deployment orchestration: metadata → function → alias → retention.

Stages run strictly in sequence and the first failure is terminal. There is
no retry and no compensation; a failure after the function or alias was
changed still reports the whole deployment as failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import DeletionPartialFailure, StageError
from .metadata import load_descriptor
from .models.descriptor import ArtifactLocation, DesiredStateDescriptor
from .models.settings import DeployerSettings
from .reconcile.alias import AliasReconciler
from .reconcile.function import FunctionReconciler, FunctionReconciliation
from .reconcile.retention import RetentionPruner
from .store.contracts import FunctionStore, MetadataSource
from .utils.logger import get_logger

logger = get_logger(__name__)


class DeploymentState(str, Enum):
    START = "START"
    METADATA_LOADED = "METADATA_LOADED"
    FUNCTION_RECONCILED = "FUNCTION_RECONCILED"
    ALIAS_RECONCILED = "ALIAS_RECONCILED"
    PRUNE_SKIPPED = "PRUNE_SKIPPED"
    PRUNE_COMPLETED = "PRUNE_COMPLETED"
    DONE = "DONE"
    FAILED = "FAILED"


class Stage:
    CONFIGURATION = "configuration"
    METADATA = "metadata"
    FUNCTION = "function"
    ALIAS = "alias"
    RETENTION = "retention"


@dataclass
class DeploymentOutcome:
    status: str  # "ok" | "error"
    states: List[DeploymentState] = field(default_factory=list)
    function_name: Optional[str] = None
    function_arn: Optional[str] = None
    version_id: Optional[str] = None
    alias_arn: Optional[str] = None
    deleted_versions: List[str] = field(default_factory=list)
    error: Optional[StageError] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def state(self) -> DeploymentState:
        return self.states[-1] if self.states else DeploymentState.START

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "status": self.status,
            "state": self.state.value,
            "function_name": self.function_name,
            "function_arn": self.function_arn,
            "version": self.version_id,
            "alias_arn": self.alias_arn,
            "deleted_versions": list(self.deleted_versions),
        }
        if self.error is not None:
            payload["stage"] = self.error.stage
            payload["error"] = self.error.to_dict()
        return payload


class DeploymentOrchestrator:
    def __init__(self, settings: DeployerSettings, store: FunctionStore, metadata_source: MetadataSource):
        self._settings = settings
        self._store = store
        self._metadata = metadata_source

    def deploy(self, location: ArtifactLocation) -> DeploymentOutcome:
        outcome = DeploymentOutcome(status="error", states=[DeploymentState.START])
        try:
            self._run(location, outcome)
        except StageError as exc:
            outcome.error = exc
            outcome.states.append(DeploymentState.FAILED)
            if isinstance(exc.cause, DeletionPartialFailure):
                outcome.deleted_versions = sorted(exc.cause.deleted, key=int)
            logger.error(
                "Deployment failed",
                extra={"stage": exc.stage, "error": str(exc.cause), "retryable": exc.retryable},
            )
            return outcome

        outcome.status = "ok"
        outcome.states.append(DeploymentState.DONE)
        logger.info("Deployment complete", extra=outcome.to_dict())
        return outcome

    def _run(self, location: ArtifactLocation, outcome: DeploymentOutcome) -> None:
        settings = self._settings
        with _stage(Stage.CONFIGURATION):
            settings.validate()

        with _stage(Stage.METADATA):
            desired = load_descriptor(self._metadata, location, settings.environment_variables)
        outcome.function_name = desired.name
        outcome.states.append(DeploymentState.METADATA_LOADED)

        with _stage(Stage.FUNCTION):
            function = FunctionReconciler(self._store, settings.role_arn).reconcile(location, desired)
        outcome.function_arn = function.function_arn
        outcome.version_id = function.version_id
        outcome.states.append(DeploymentState.FUNCTION_RECONCILED)

        with _stage(Stage.ALIAS):
            outcome.alias_arn = self._reconcile_alias(function, desired)
        outcome.states.append(DeploymentState.ALIAS_RECONCILED)

        if not settings.policy.enabled:
            outcome.states.append(DeploymentState.PRUNE_SKIPPED)
            return
        with _stage(Stage.RETENTION):
            result = RetentionPruner(self._store).prune(desired.name, settings.policy.max_unaliased_versions)
        outcome.deleted_versions = sorted(result.deleted, key=int)
        outcome.states.append(DeploymentState.PRUNE_COMPLETED)

    def _reconcile_alias(self, function: FunctionReconciliation, desired: DesiredStateDescriptor) -> str:
        return AliasReconciler(self._store).reconcile(function.function_name, desired.alias_name, function.version_id)


class _stage:
    """Context manager wrapping any failure with its stage name."""

    def __init__(self, name: str):
        self.name = name

    def __enter__(self) -> "_stage":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is None or isinstance(exc, StageError) or not isinstance(exc, Exception):
            return False
        raise StageError(self.name, exc) from exc
