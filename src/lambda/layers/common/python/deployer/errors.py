"""Error taxonomy for the deployer.

Every failure raised by the stores, reconcilers and orchestrator is one of the
kinds below. ``retryable`` tells the handler whether the invocation may be
retried as a whole.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError


class DeployerError(Exception):
    """Base class for deployer failures."""

    retryable = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": str(self),
            "retryable": self.retryable,
        }


class ConfigurationError(DeployerError):
    """Bad or missing input: artifact metadata, policy, role or rejected configuration."""


class ArtifactError(DeployerError):
    """The code artifact cannot be read or is malformed."""


class TransientError(DeployerError):
    """Backing-store fault that is safe to retry (throttling, service errors)."""

    retryable = True


class DeletionPartialFailure(DeployerError):
    """Some selected versions could not be deleted during pruning."""

    def __init__(self, deleted: Iterable[str], failures: Mapping[str, Exception]):
        self.deleted = frozenset(deleted)
        self.failures: Dict[str, Exception] = dict(failures)
        names = ", ".join(sorted(self.failures, key=_version_sort_key))
        super().__init__(f"failed to delete versions: {names}")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["failed_versions"] = {vid: str(exc) for vid, exc in self.failures.items()}
        payload["deleted_versions"] = sorted(self.deleted, key=_version_sort_key)
        return payload


class StageError(DeployerError):
    """Wraps a failure with the pipeline stage it occurred in."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage}: {cause}")

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return bool(getattr(self.cause, "retryable", False))

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.cause, DeployerError):
            payload = self.cause.to_dict()
        else:
            payload = {"type": type(self.cause).__name__, "message": str(self.cause), "retryable": False}
        payload["stage"] = self.stage
        return payload


# Error codes returned by Lambda/S3 that indicate a temporary condition
TRANSIENT_ERROR_CODES = frozenset(
    {
        "TooManyRequestsException",
        "ThrottlingException",
        "Throttling",
        "RequestLimitExceeded",
        "SlowDown",
        "ServiceException",
        "ServiceUnavailable",
        "ServiceUnavailableException",
        "InternalError",
        "InternalFailure",
        "ResourceConflictException",
        "EC2ThrottledException",
        "RequestTimeout",
        "RequestTimeoutException",
        "500",
        "502",
        "503",
        "504",
    }
)

ARTIFACT_ERROR_CODES = frozenset(
    {
        "InvalidZipFileException",
        "CodeStorageExceededException",
        "CodeVerificationFailedException",
        "InvalidCodeSignatureException",
        "RequestEntityTooLargeException",
        "NoSuchKey",
        "NoSuchBucket",
        "404",
        "403",
        "AccessDenied",
    }
)


def error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def error_message(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Message", "")) or str(exc)


def translate_client_error(exc: Exception, *, artifact: bool = False, context: Optional[str] = None) -> DeployerError:
    """Map a botocore exception onto the deployer taxonomy.

    ``artifact`` marks calls that read the code bundle, where missing or
    forbidden objects mean the artifact is unreadable rather than misconfigured.
    """
    prefix = f"{context}: " if context else ""
    if isinstance(exc, DeployerError):
        return exc
    # Client-side validation of request values; retrying cannot succeed
    if isinstance(exc, ParamValidationError):
        return ConfigurationError(f"{prefix}{exc}")
    if isinstance(exc, BotoCoreError):
        return TransientError(f"{prefix}{exc}")
    if not isinstance(exc, ClientError):
        return ConfigurationError(f"{prefix}{exc}")

    code = error_code(exc)
    message = error_message(exc)
    detail = f"{prefix}{code}: {message}" if code else f"{prefix}{message}"
    if code in TRANSIENT_ERROR_CODES:
        return TransientError(detail)
    if artifact:
        # Lambda reports unreadable S3 code as InvalidParameterValueException
        if code in ARTIFACT_ERROR_CODES or "S3 Error" in message or "GetObject" in message:
            return ArtifactError(detail)
    elif code in ARTIFACT_ERROR_CODES - {"404", "403", "AccessDenied", "NoSuchKey", "NoSuchBucket"}:
        return ArtifactError(detail)
    return ConfigurationError(detail)


def _version_sort_key(version_id: str):
    try:
        return (0, int(version_id), version_id)
    except ValueError:
        return (1, 0, version_id)
