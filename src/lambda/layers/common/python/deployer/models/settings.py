"""Deployer settings read once from the process environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..errors import ConfigurationError

ROLE_ENV = "DEPLOYER_FUNCTION_ROLE_ARN"
ENV_VARS_ENV = "DEPLOYER_FUNCTION_ENV_VARS"
MAX_UNALIASED_ENV = "DEPLOYER_POLICY_MAX_UNALIASED_VERSIONS"


@dataclass(frozen=True)
class RetentionPolicy:
    # None disables pruning
    max_unaliased_versions: Optional[int] = None

    @property
    def enabled(self) -> bool:
        return self.max_unaliased_versions is not None


@dataclass(frozen=True)
class DeployerSettings:
    role_arn: str
    environment_variables: Dict[str, str] = field(default_factory=dict)
    policy: RetentionPolicy = field(default_factory=RetentionPolicy)
    environment: Optional[str] = None

    def validate(self) -> None:
        if not self.role_arn or not self.role_arn.strip():
            raise ConfigurationError(f"{ROLE_ENV} not set")
        limit = self.policy.max_unaliased_versions
        if limit is not None and limit < 0:
            raise ConfigurationError(f"{MAX_UNALIASED_ENV} must be >= 0, got {limit}")

    @staticmethod
    def load(environ: Optional[Mapping[str, str]] = None) -> "DeployerSettings":
        env = os.environ if environ is None else environ

        settings = DeployerSettings(
            role_arn=env.get(ROLE_ENV, "").strip(),
            environment_variables=parse_environment_overlay(env.get(ENV_VARS_ENV)),
            policy=RetentionPolicy(parse_max_unaliased(env.get(MAX_UNALIASED_ENV))),
            environment=env.get("ENVIRONMENT"),
        )
        settings.validate()
        return settings


def parse_max_unaliased(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw.strip(), 10)
    except ValueError as exc:
        raise ConfigurationError(f"{MAX_UNALIASED_ENV} is not an integer: {raw!r}") from exc
    return value


def parse_environment_overlay(raw: Optional[str]) -> Dict[str, str]:
    """Parse the JSON environment-variable overlay.

    Scalars are stringified (``true`` stays ``"true"``); nested values and
    nulls are rejected since Lambda only accepts string values.
    """
    if raw is None or not raw.strip():
        return {}
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"error un-marshaling {ENV_VARS_ENV}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{ENV_VARS_ENV} must be a JSON object")

    out: Dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, str):
            out[key] = value
        elif isinstance(value, (bool, int, float)):
            out[key] = json.dumps(value)
        else:
            raise ConfigurationError(f"{ENV_VARS_ENV}[{key!r}] must be a string or scalar")
    return out
