"""Models subpackage exposed via the deployer layer."""

from .descriptor import ArtifactLocation, DesiredStateDescriptor
from .events import ArtifactUploadEvent, S3EventRecord
from .records import LATEST, Alias, FunctionRecord, Version
from .settings import DeployerSettings, RetentionPolicy

__all__ = [
    "ArtifactLocation",
    "DesiredStateDescriptor",
    "ArtifactUploadEvent",
    "S3EventRecord",
    "LATEST",
    "Alias",
    "FunctionRecord",
    "Version",
    "DeployerSettings",
    "RetentionPolicy",
]
