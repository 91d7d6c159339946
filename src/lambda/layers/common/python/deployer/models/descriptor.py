"""Desired-state models built from artifact metadata using Pydantic v2."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ArtifactLocation(BaseModel):
    """S3 location of a deployable code bundle."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(min_length=1)
    key: str = Field(min_length=1)

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class DesiredStateDescriptor(BaseModel):
    """Configuration the deployed function must converge to.

    ``name``, ``handler``, ``runtime``, ``memory_size`` and ``timeout_seconds``
    have no defaults. Integer fields accept numeric strings because object
    metadata only carries strings.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    handler: str = Field(min_length=1)
    runtime: str = Field(min_length=1)
    memory_size: int = Field(gt=0)
    timeout_seconds: int = Field(gt=0)
    alias_name: str = Field(min_length=1)
    description: str = ""
    environment_variables: Dict[str, str] = Field(default_factory=dict)

    @field_validator("memory_size", "timeout_seconds", mode="before")
    @classmethod
    def _parse_int(cls, v: Any) -> Any:  # type: ignore[override]
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("value is required")
            return int(v, 10)
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v: Any) -> Any:  # type: ignore[override]
        return "" if v is None else v

    def configuration(self, role: str) -> Dict[str, Any]:
        """Return the Lambda configuration fields for create/update calls."""
        return {
            "Role": role,
            "Handler": self.handler,
            "Runtime": self.runtime,
            "MemorySize": self.memory_size,
            "Timeout": self.timeout_seconds,
            "Description": self.description,
            "Environment": {"Variables": dict(self.environment_variables)},
        }
