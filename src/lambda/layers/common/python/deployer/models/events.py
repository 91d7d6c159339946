"""S3 event notification models for the deployer trigger.

Only the fields the deployer reads are modelled; everything else in the
notification is ignored.
"""

from __future__ import annotations

from typing import Any, List, Optional
from urllib.parse import unquote_plus

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .descriptor import ArtifactLocation


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class S3Bucket(_Lenient):
    name: str
    arn: Optional[str] = None


class S3Object(_Lenient):
    key: str
    size: Optional[int] = None
    e_tag: Optional[str] = Field(default=None, alias="eTag")
    sequencer: Optional[str] = None

    @field_validator("key")
    @classmethod
    def _decode_key(cls, v: str) -> str:  # type: ignore[override]
        # Keys arrive URL-encoded with spaces as '+'
        return unquote_plus(v)


class S3Entity(_Lenient):
    bucket: S3Bucket
    object: S3Object
    configuration_id: Optional[str] = Field(default=None, alias="configurationId")


class ResponseElements(_Lenient):
    request_id: Optional[str] = Field(default=None, alias="x-amz-request-id")


class S3EventRecord(_Lenient):
    event_name: Optional[str] = Field(default=None, alias="eventName")
    event_time: Optional[str] = Field(default=None, alias="eventTime")
    aws_region: Optional[str] = Field(default=None, alias="awsRegion")
    s3: S3Entity
    response_elements: Optional[ResponseElements] = Field(default=None, alias="responseElements")

    @property
    def location(self) -> ArtifactLocation:
        return ArtifactLocation(bucket=self.s3.bucket.name, key=self.s3.object.key)

    @property
    def request_id(self) -> Optional[str]:
        return self.response_elements.request_id if self.response_elements else None


class ArtifactUploadEvent(_Lenient):
    records: List[S3EventRecord] = Field(default_factory=list, alias="Records")

    @field_validator("records", mode="before")
    @classmethod
    def _coerce_records(cls, v: Any) -> Any:  # type: ignore[override]
        return [] if v is None else v
