"""In-memory stand-ins for the Lambda and S3 stores.

Behaves like the Lambda API where the reconcilers depend on it: create with
publish produces version 1, publishing without changes returns the previous
version, version numbers are never reused, and aliased versions or
``$LATEST`` cannot be deleted.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from deployer.errors import ArtifactError, ConfigurationError
from deployer.models.descriptor import ArtifactLocation
from deployer.models.records import LATEST, Alias, FunctionRecord, Version

MUTATING_CALLS = frozenset(
    {
        "create_function",
        "update_function_code",
        "update_function_configuration",
        "publish_version",
        "create_alias",
        "update_alias",
        "delete_version",
    }
)

SUPPORTED_RUNTIMES = frozenset({"python3.11", "python3.12", "python3.13", "nodejs20.x", "provided.al2023"})

ACCOUNT = "123456789012"
REGION = "us-east-1"


def function_arn(name: str) -> str:
    return f"arn:aws:lambda:{REGION}:{ACCOUNT}:function:{name}"


@dataclass
class _Function:
    name: str
    code_sha256: str
    configuration: Dict[str, Any]
    versions: Dict[str, Tuple[Version, Dict[str, Any]]] = field(default_factory=dict)
    aliases: Dict[str, Alias] = field(default_factory=dict)
    next_version: int = 1


class FakeFunctionStore:
    def __init__(self, *, publish_on_create: bool = True) -> None:
        self.publish_on_create = publish_on_create
        self.artifacts: Dict[Tuple[str, str], bytes] = {}
        self.functions: Dict[str, _Function] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        # method name -> exception, or callable(*args) returning an exception or None
        self.failures: Dict[str, Any] = {}

    # -- helpers -----------------------------------------------------------

    def put_artifact(self, bucket: str, key: str, body: bytes) -> ArtifactLocation:
        self.artifacts[(bucket, key)] = body
        return ArtifactLocation(bucket=bucket, key=key)

    def seed_function(
        self,
        name: str,
        version_ids: List[int],
        aliases: Optional[Mapping[str, str]] = None,
        *,
        configuration: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Create a function directly with the given published version numbers."""
        fn = _Function(name=name, code_sha256="seed", configuration=dict(configuration or {}))
        for number in version_ids:
            vid = str(number)
            fn.versions[vid] = (Version(id=vid, code_sha256=f"seed-{vid}"), dict(fn.configuration))
        fn.next_version = max(version_ids, default=0) + 1
        for alias_name, target in (aliases or {}).items():
            fn.aliases[alias_name] = Alias(name=alias_name, target_version_id=str(target))
        self.functions[name] = fn

    def set_routing(self, name: str, alias_name: str, additional: List[str]) -> None:
        fn = self.functions[name]
        current = fn.aliases[alias_name]
        fn.aliases[alias_name] = Alias(
            name=current.name,
            target_version_id=current.target_version_id,
            arn=current.arn,
            additional_version_ids=frozenset(additional),
        )

    def calls_to(self, method: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    def mutating_calls(self) -> List[Tuple[str, Tuple[Any, ...]]]:
        return [call for call in self.calls if call[0] in MUTATING_CALLS]

    def published_ids(self, name: str) -> List[str]:
        return list(self.functions[name].versions)

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        failure = self.failures.get(method)
        if failure is None:
            return
        exc = failure(*args) if callable(failure) and not isinstance(failure, BaseException) else failure
        if exc is not None:
            raise exc

    def _read_artifact(self, location: ArtifactLocation) -> str:
        body = self.artifacts.get((location.bucket, location.key))
        if body is None:
            raise ArtifactError(f"S3 Error Code: NoSuchKey for {location}")
        return hashlib.sha256(body).hexdigest()

    def _function(self, name: str) -> _Function:
        fn = self.functions.get(name)
        if fn is None:
            raise ConfigurationError(f"Function not found: {name}")
        return fn

    @staticmethod
    def _check_configuration(configuration: Mapping[str, Any]) -> None:
        runtime = configuration.get("Runtime")
        if runtime is not None and runtime not in SUPPORTED_RUNTIMES:
            raise ConfigurationError(f"InvalidParameterValueException: unsupported runtime {runtime}")

    def _publish(self, fn: _Function) -> Version:
        if fn.versions:
            last, last_config = fn.versions[list(fn.versions)[-1]]
            if last.code_sha256 == fn.code_sha256 and last_config == fn.configuration:
                return last
        vid = str(fn.next_version)
        fn.next_version += 1
        version = Version(id=vid, code_sha256=fn.code_sha256)
        fn.versions[vid] = (version, dict(fn.configuration))
        return version

    # -- FunctionStore -----------------------------------------------------

    def get_function(self, name: str) -> Optional[FunctionRecord]:
        self._record("get_function", name)
        fn = self.functions.get(name)
        if fn is None:
            return None
        return FunctionRecord(name=name, arn=function_arn(name), code_sha256=fn.code_sha256)

    def create_function(
        self, name: str, location: ArtifactLocation, configuration: Mapping[str, Any]
    ) -> FunctionRecord:
        self._record("create_function", name, location, dict(configuration))
        self._check_configuration(configuration)
        sha = self._read_artifact(location)
        if name in self.functions:
            raise ConfigurationError(f"Function already exist: {name}")
        fn = _Function(name=name, code_sha256=sha, configuration=dict(configuration))
        self.functions[name] = fn
        version = LATEST
        if self.publish_on_create:
            version = self._publish(fn).id
        return FunctionRecord(name=name, arn=function_arn(name), code_sha256=sha, version=version)

    def update_function_code(self, name: str, location: ArtifactLocation) -> None:
        self._record("update_function_code", name, location)
        fn = self._function(name)
        fn.code_sha256 = self._read_artifact(location)

    def update_function_configuration(self, name: str, configuration: Mapping[str, Any]) -> None:
        self._record("update_function_configuration", name, dict(configuration))
        fn = self._function(name)
        self._check_configuration(configuration)
        fn.configuration = dict(configuration)

    def publish_version(self, name: str) -> Version:
        self._record("publish_version", name)
        return self._publish(self._function(name))

    def get_alias(self, name: str, alias_name: str) -> Optional[Alias]:
        self._record("get_alias", name, alias_name)
        return self._function(name).aliases.get(alias_name)

    def create_alias(self, name: str, alias_name: str, version_id: str) -> Alias:
        self._record("create_alias", name, alias_name, version_id)
        fn = self._function(name)
        if version_id not in fn.versions:
            raise ConfigurationError(f"Version not found: {name}:{version_id}")
        alias = Alias(name=alias_name, target_version_id=version_id, arn=f"{function_arn(name)}:{alias_name}")
        fn.aliases[alias_name] = alias
        return alias

    def update_alias(self, name: str, alias_name: str, version_id: str) -> Alias:
        self._record("update_alias", name, alias_name, version_id)
        fn = self._function(name)
        if version_id not in fn.versions:
            raise ConfigurationError(f"Version not found: {name}:{version_id}")
        current = fn.aliases.get(alias_name)
        if current is None:
            raise ConfigurationError(f"Alias not found: {name}:{alias_name}")
        alias = Alias(
            name=alias_name,
            target_version_id=version_id,
            arn=f"{function_arn(name)}:{alias_name}",
            additional_version_ids=current.additional_version_ids,
        )
        fn.aliases[alias_name] = alias
        return alias

    def list_versions(self, name: str) -> List[Version]:
        self._record("list_versions", name)
        fn = self._function(name)
        return [Version(id=LATEST, code_sha256=fn.code_sha256)] + [v for v, _ in fn.versions.values()]

    def list_aliases(self, name: str) -> List[Alias]:
        self._record("list_aliases", name)
        return list(self._function(name).aliases.values())

    def delete_version(self, name: str, version_id: str) -> None:
        self._record("delete_version", name, version_id)
        fn = self._function(name)
        if version_id == LATEST:
            raise ConfigurationError("$LATEST cannot be deleted as a version")
        for alias in fn.aliases.values():
            if version_id in alias.referenced_version_ids:
                raise ConfigurationError(f"Version {version_id} is referenced by alias {alias.name}")
        if version_id not in fn.versions:
            raise ConfigurationError(f"Version not found: {name}:{version_id}")
        del fn.versions[version_id]

    # -- helpers for assertions --------------------------------------------

    def configuration_of(self, name: str) -> Dict[str, Any]:
        return dict(self._function(name).configuration)

    def alias_target(self, name: str, alias_name: str) -> str:
        return self._function(name).aliases[alias_name].target_version_id


class FakeMetadataSource:
    def __init__(self) -> None:
        self.objects: Dict[Tuple[str, str], Dict[str, str]] = {}
        self.calls: List[Tuple[str, str]] = []

    def put(self, bucket: str, key: str, metadata: Mapping[str, str]) -> None:
        self.objects[(bucket, key)] = dict(metadata)

    def head_object(self, bucket: str, key: str) -> Dict[str, str]:
        self.calls.append((bucket, key))
        meta = self.objects.get((bucket, key))
        if meta is None:
            raise ArtifactError(f"404: Not Found s3://{bucket}/{key}")
        return dict(meta)


def make_failure(version_ids: List[str], exc_factory: Callable[[str], Exception]) -> Callable[..., Optional[Exception]]:
    """Failure hook for ``delete_version`` that fails only the given versions."""

    def _hook(name: str, version_id: str) -> Optional[Exception]:
        return exc_factory(version_id) if version_id in version_ids else None

    return _hook
