from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models.descriptor import ArtifactLocation, DesiredStateDescriptor
from ..models.records import FunctionRecord, Version
from ..store.contracts import FunctionStore
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FunctionReconciliation:
    function_name: str
    function_arn: str
    version_id: str
    created: bool


class FunctionReconciler:
    """Creates or updates a function from an artifact and publishes a version.

    Configuration is pushed unconditionally on the update path; the store
    treats unchanged fields as a no-op.
    """

    def __init__(self, store: FunctionStore, role_arn: str):
        self._store = store
        self._role_arn = role_arn

    def reconcile(self, location: ArtifactLocation, desired: DesiredStateDescriptor) -> FunctionReconciliation:
        configuration = desired.configuration(self._role_arn)
        existing = self._store.get_function(desired.name)

        if existing is None:
            logger.info("Creating function", extra={"function_name": desired.name, "artifact": str(location)})
            record = self._store.create_function(desired.name, location, configuration)
            version_id = self._initial_version(record)
            created = True
        else:
            logger.info("Updating function", extra={"function_name": desired.name, "artifact": str(location)})
            self._store.update_function_code(desired.name, location)
            self._store.update_function_configuration(desired.name, configuration)
            version = self._store.publish_version(desired.name)
            record = existing
            version_id = version.id
            created = False

        logger.info(
            "Function reconciled",
            extra={"function_name": desired.name, "version": version_id, "function_created": created},
        )
        return FunctionReconciliation(
            function_name=desired.name, function_arn=record.arn, version_id=version_id, created=created
        )

    def _initial_version(self, record: FunctionRecord) -> str:
        if record.has_published_version:
            return record.version
        newest = _newest_published(self._store.list_versions(record.name))
        if newest is not None:
            return newest.id
        # Create did not publish; do it explicitly
        return self._store.publish_version(record.name).id


def _newest_published(versions) -> Optional[Version]:
    published = [v for v in versions if v.number is not None]
    if not published:
        return None
    return max(published, key=lambda v: v.number)
