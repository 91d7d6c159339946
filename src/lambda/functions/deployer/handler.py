"""S3 → Lambda deployer.

Invoked whenever a function bundle is written to the artifact bucket. Reads
the object's metadata, converges the named function and alias to it and,
when a retention policy is configured, prunes old unaliased versions.

Environment:
    DEPLOYER_FUNCTION_ROLE_ARN              execution role for deployed functions (required)
    DEPLOYER_FUNCTION_ENV_VARS              JSON object of environment variables (optional)
    DEPLOYER_POLICY_MAX_UNALIASED_VERSIONS  unaliased versions to keep; enables pruning (optional)
"""

from __future__ import annotations

import json
from typing import Any, Dict

import boto3
from pydantic import ValidationError

from deployer import version_string
from deployer.errors import ConfigurationError, StageError
from deployer.models.descriptor import ArtifactLocation
from deployer.models.events import ArtifactUploadEvent
from deployer.models.settings import DeployerSettings
from deployer.orchestrator import DeploymentOrchestrator, DeploymentOutcome, DeploymentState, Stage
from deployer.store.lambda_store import DEFAULT_CLIENT_CONFIG, LambdaFunctionStore, S3MetadataSource
from deployer.utils.logger import extract_correlation_id, get_logger

logger = get_logger(__name__)

_lambda = boto3.client("lambda", config=DEFAULT_CLIENT_CONFIG)
_s3 = boto3.client("s3", config=DEFAULT_CLIENT_CONFIG)


def _artifact_location(event: Dict[str, Any], log: Any) -> ArtifactLocation:
    try:
        parsed = ArtifactUploadEvent.model_validate(event)
    except ValidationError as exc:
        raise ConfigurationError(f"error un-marshaling event json: {exc}") from exc
    if not parsed.records:
        raise ConfigurationError("event contains no S3 records")
    if len(parsed.records) > 1:
        # One artifact per invocation; later records are not deployed
        log.warning(
            "Event contains multiple records; only the first is deployed",
            extra={"ignored_records": len(parsed.records) - 1},
        )
    return parsed.records[0].location


def _failed(stage: str, exc: ConfigurationError) -> Dict[str, Any]:
    outcome = DeploymentOutcome(
        status="error",
        states=[DeploymentState.START, DeploymentState.FAILED],
        error=StageError(stage, exc),
    )
    return outcome.to_dict()


def main(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    corr_id = extract_correlation_id(event, context)
    log = get_logger(__name__, correlation_id=corr_id) if corr_id else logger
    log.info("Deployer invoked", extra={"deployer_version": version_string()})
    log.debug("Received event: %s", json.dumps(event, default=str))

    try:
        settings = DeployerSettings.load()
    except ConfigurationError as exc:
        log.error("Invalid deployer configuration", extra={"error": str(exc)})
        return _failed(Stage.CONFIGURATION, exc)

    try:
        location = _artifact_location(event, log)
    except ConfigurationError as exc:
        log.error("Invalid trigger event", extra={"error": str(exc)})
        return _failed("event", exc)

    orchestrator = DeploymentOrchestrator(settings, LambdaFunctionStore(_lambda), S3MetadataSource(_s3))
    outcome = orchestrator.deploy(location)
    if outcome.error is not None and outcome.error.retryable:
        # Let the asynchronous invoker retry the whole deployment
        raise outcome.error
    return outcome.to_dict()
