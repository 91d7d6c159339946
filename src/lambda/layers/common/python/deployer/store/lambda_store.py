"""boto3 implementations of the store interfaces."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from ..errors import TransientError, error_code, translate_client_error
from ..models.descriptor import ArtifactLocation
from ..models.records import Alias, FunctionRecord, Version
from ..utils.logger import get_logger

logger = get_logger(__name__)

_NOT_FOUND = "ResourceNotFoundException"

DEFAULT_CLIENT_CONFIG = Config(retries={"max_attempts": 5, "mode": "standard"})


def _record_from_configuration(conf: Mapping[str, Any]) -> FunctionRecord:
    return FunctionRecord(
        name=conf["FunctionName"],
        arn=conf["FunctionArn"],
        code_sha256=conf.get("CodeSha256"),
        version=str(conf.get("Version", "$LATEST")),
    )


def _version_from_configuration(conf: Mapping[str, Any]) -> Version:
    return Version(
        id=str(conf["Version"]),
        code_sha256=conf.get("CodeSha256"),
        description=conf.get("Description") or "",
        last_modified=conf.get("LastModified"),
    )


def _alias_from_response(resp: Mapping[str, Any]) -> Alias:
    weights = (resp.get("RoutingConfig") or {}).get("AdditionalVersionWeights") or {}
    return Alias(
        name=resp["Name"],
        target_version_id=str(resp["FunctionVersion"]),
        arn=resp.get("AliasArn"),
        additional_version_ids=frozenset(str(v) for v in weights),
    )


class LambdaFunctionStore:
    """``FunctionStore`` backed by the AWS Lambda API."""

    def __init__(self, client: Optional[Any] = None, *, region_name: Optional[str] = None):
        self._client = client or boto3.client("lambda", region_name=region_name, config=DEFAULT_CLIENT_CONFIG)

    def get_function(self, name: str) -> Optional[FunctionRecord]:
        try:
            resp = self._client.get_function(FunctionName=name)
        except ClientError as exc:
            if error_code(exc) == _NOT_FOUND:
                return None
            raise translate_client_error(exc, context=f"get function {name}") from exc
        except BotoCoreError as exc:
            raise translate_client_error(exc, context=f"get function {name}") from exc
        return _record_from_configuration(resp["Configuration"])

    def create_function(
        self, name: str, location: ArtifactLocation, configuration: Mapping[str, Any]
    ) -> FunctionRecord:
        try:
            resp = self._client.create_function(
                FunctionName=name,
                Code={"S3Bucket": location.bucket, "S3Key": location.key},
                Publish=True,
                **dict(configuration),
            )
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, artifact=True, context=f"create function {name}") from exc
        if resp.get("State") == "Pending":
            self._wait("function_active", name)
        return _record_from_configuration(resp)

    def update_function_code(self, name: str, location: ArtifactLocation) -> None:
        try:
            resp = self._client.update_function_code(
                FunctionName=name, S3Bucket=location.bucket, S3Key=location.key, Publish=False
            )
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, artifact=True, context=f"update code {name}") from exc
        # Lambda rejects configuration updates while a code update is in progress
        if resp.get("LastUpdateStatus") == "InProgress":
            self._wait("function_updated", name)

    def update_function_configuration(self, name: str, configuration: Mapping[str, Any]) -> None:
        try:
            resp = self._client.update_function_configuration(FunctionName=name, **dict(configuration))
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, context=f"update configuration {name}") from exc
        if resp.get("LastUpdateStatus") == "InProgress":
            self._wait("function_updated", name)

    def publish_version(self, name: str) -> Version:
        try:
            resp = self._client.publish_version(FunctionName=name)
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, context=f"publish version {name}") from exc
        return _version_from_configuration(resp)

    def get_alias(self, name: str, alias_name: str) -> Optional[Alias]:
        try:
            resp = self._client.get_alias(FunctionName=name, Name=alias_name)
        except ClientError as exc:
            if error_code(exc) == _NOT_FOUND:
                return None
            raise translate_client_error(exc, context=f"get alias {name}:{alias_name}") from exc
        except BotoCoreError as exc:
            raise translate_client_error(exc, context=f"get alias {name}:{alias_name}") from exc
        return _alias_from_response(resp)

    def create_alias(self, name: str, alias_name: str, version_id: str) -> Alias:
        try:
            resp = self._client.create_alias(FunctionName=name, Name=alias_name, FunctionVersion=version_id)
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, context=f"create alias {name}:{alias_name}") from exc
        return _alias_from_response(resp)

    def update_alias(self, name: str, alias_name: str, version_id: str) -> Alias:
        try:
            resp = self._client.update_alias(FunctionName=name, Name=alias_name, FunctionVersion=version_id)
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, context=f"update alias {name}:{alias_name}") from exc
        return _alias_from_response(resp)

    def list_versions(self, name: str) -> List[Version]:
        versions: List[Version] = []
        try:
            paginator = self._client.get_paginator("list_versions_by_function")
            for page in paginator.paginate(FunctionName=name):
                versions.extend(_version_from_configuration(conf) for conf in page.get("Versions", []))
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, context=f"list versions {name}") from exc
        return versions

    def list_aliases(self, name: str) -> List[Alias]:
        aliases: List[Alias] = []
        try:
            paginator = self._client.get_paginator("list_aliases")
            for page in paginator.paginate(FunctionName=name):
                aliases.extend(_alias_from_response(item) for item in page.get("Aliases", []))
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, context=f"list aliases {name}") from exc
        return aliases

    def delete_version(self, name: str, version_id: str) -> None:
        try:
            self._client.delete_function(FunctionName=name, Qualifier=version_id)
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, context=f"delete version {name}:{version_id}") from exc

    def _wait(self, waiter_name: str, name: str) -> None:
        logger.info("Waiting for function state", extra={"waiter": waiter_name, "function_name": name})
        try:
            self._client.get_waiter(waiter_name).wait(FunctionName=name)
        except WaiterError as exc:
            raise TransientError(f"{waiter_name} wait for {name} failed: {exc}") from exc


class S3MetadataSource:
    """``MetadataSource`` reading S3 user metadata with a single HeadObject."""

    def __init__(self, client: Optional[Any] = None, *, region_name: Optional[str] = None):
        self._client = client or boto3.client("s3", region_name=region_name, config=DEFAULT_CLIENT_CONFIG)

    def head_object(self, bucket: str, key: str) -> Dict[str, str]:
        try:
            resp = self._client.head_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise translate_client_error(exc, artifact=True, context=f"head s3://{bucket}/{key}") from exc
        # boto3 strips the x-amz-meta- prefix; keys are lower-cased by S3
        return {str(k).lower(): str(v) for k, v in (resp.get("Metadata") or {}).items()}
