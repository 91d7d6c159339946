"""Capability interfaces consumed by the reconcilers.

Implementations raise the deployer error taxonomy (``ConfigurationError``,
``ArtifactError``, ``TransientError``) rather than SDK exceptions. "Not found"
is reported as ``None``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol

from ..models.descriptor import ArtifactLocation
from ..models.records import Alias, FunctionRecord, Version


class FunctionStore(Protocol):
    """Protocol representing the function execution platform."""

    def get_function(self, name: str) -> Optional[FunctionRecord]:
        ...

    def create_function(
        self, name: str, location: ArtifactLocation, configuration: Mapping[str, Any]
    ) -> FunctionRecord:
        ...

    def update_function_code(self, name: str, location: ArtifactLocation) -> None:
        ...

    def update_function_configuration(self, name: str, configuration: Mapping[str, Any]) -> None:
        ...

    def publish_version(self, name: str) -> Version:
        ...

    def get_alias(self, name: str, alias_name: str) -> Optional[Alias]:
        ...

    def create_alias(self, name: str, alias_name: str, version_id: str) -> Alias:
        ...

    def update_alias(self, name: str, alias_name: str, version_id: str) -> Alias:
        ...

    def list_versions(self, name: str) -> List[Version]:
        ...

    def list_aliases(self, name: str) -> List[Alias]:
        ...

    def delete_version(self, name: str, version_id: str) -> None:
        ...


class MetadataSource(Protocol):
    """Protocol representing the artifact storage service."""

    def head_object(self, bucket: str, key: str) -> Dict[str, str]:
        ...
