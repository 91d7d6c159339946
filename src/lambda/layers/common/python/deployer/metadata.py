"""Artifact metadata → DesiredStateDescriptor.

The uploader tags each code bundle with user metadata naming the function and
its configuration. These attribute names are the contract with the uploader.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from pydantic import ValidationError

from .errors import ConfigurationError
from .models.descriptor import ArtifactLocation, DesiredStateDescriptor
from .store.contracts import MetadataSource

FUNCTION_NAME_TAG = "function-name"
FUNCTION_HANDLER_TAG = "function-handler"
FUNCTION_RUNTIME_TAG = "function-runtime"
FUNCTION_MEMORY_SIZE_TAG = "function-memory-size"
FUNCTION_TIMEOUT_TAG = "function-timeout"
FUNCTION_DESCRIPTION_TAG = "function-description"
FUNCTION_ALIAS_TAG = "function-alias"

_FIELD_BY_TAG = {
    FUNCTION_NAME_TAG: "name",
    FUNCTION_HANDLER_TAG: "handler",
    FUNCTION_RUNTIME_TAG: "runtime",
    FUNCTION_MEMORY_SIZE_TAG: "memory_size",
    FUNCTION_TIMEOUT_TAG: "timeout_seconds",
    FUNCTION_DESCRIPTION_TAG: "description",
    FUNCTION_ALIAS_TAG: "alias_name",
}
_TAG_BY_FIELD = {v: k for k, v in _FIELD_BY_TAG.items()}


def descriptor_from_metadata(
    metadata: Mapping[str, str], environment_variables: Optional[Mapping[str, str]] = None
) -> DesiredStateDescriptor:
    """Build a descriptor from object metadata plus the settings' environment overlay."""
    normalized = {str(k).lower(): v for k, v in metadata.items()}
    fields: Dict[str, object] = {
        field: normalized[tag] for tag, field in _FIELD_BY_TAG.items() if tag in normalized
    }
    fields["environment_variables"] = dict(environment_variables or {})

    try:
        return DesiredStateDescriptor(**fields)
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            loc = err.get("loc") or ("?",)
            tag = _TAG_BY_FIELD.get(str(loc[0]), str(loc[0]))
            problems.append(f"{tag}: {err.get('msg')}")
        raise ConfigurationError("invalid artifact metadata: " + "; ".join(problems)) from exc


def load_descriptor(
    source: MetadataSource,
    location: ArtifactLocation,
    environment_variables: Optional[Mapping[str, str]] = None,
) -> DesiredStateDescriptor:
    metadata = source.head_object(location.bucket, location.key)
    return descriptor_from_metadata(metadata, environment_variables)
