import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

import pytest

# Ensure the deployer layer is importable at collection time (module import stage)
_repo_root = Path(__file__).resolve().parents[1]
_repo_root_str = str(_repo_root)
if _repo_root_str not in sys.path:
    sys.path.insert(0, _repo_root_str)
_layer_path = _repo_root / "src" / "lambda" / "layers" / "common" / "python"
_layer_str = str(_layer_path)
if _layer_str not in sys.path:
    sys.path.insert(0, _layer_str)

HANDLER_PATH = str(_repo_root / "src" / "lambda" / "functions" / "deployer" / "handler.py")


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure default AWS region and dummy credentials for moto/boto3 clients.

    Also clears deployer configuration so tests never inherit it from the shell.
    """
    monkeypatch.setenv("AWS_REGION", os.environ.get("AWS_REGION", "us-east-1"))
    monkeypatch.setenv("AWS_DEFAULT_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-east-1"))
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")

    monkeypatch.delenv("DEPLOYER_FUNCTION_ROLE_ARN", raising=False)
    monkeypatch.delenv("DEPLOYER_FUNCTION_ENV_VARS", raising=False)
    monkeypatch.delenv("DEPLOYER_POLICY_MAX_UNALIASED_VERSIONS", raising=False)
    yield


@pytest.fixture
def deployer_env(monkeypatch: pytest.MonkeyPatch) -> Callable[..., None]:
    """Apply deployer environment variables.

    Usage: deployer_env() for defaults or deployer_env(max_unaliased=3, env_vars={"STAGE": "dev"}).
    """
    from tests.fixtures.deployer_builders import ROLE_ARN

    def _apply(
        *,
        role_arn: Optional[str] = ROLE_ARN,
        env_vars: Optional[Dict[str, Any]] = None,
        max_unaliased: Optional[int] = None,
        environment: str = "test",
    ) -> None:
        monkeypatch.setenv("ENVIRONMENT", environment)
        if role_arn is not None:
            monkeypatch.setenv("DEPLOYER_FUNCTION_ROLE_ARN", role_arn)
        if env_vars is not None:
            monkeypatch.setenv("DEPLOYER_FUNCTION_ENV_VARS", json.dumps(env_vars))
        if max_unaliased is not None:
            monkeypatch.setenv("DEPLOYER_POLICY_MAX_UNALIASED_VERSIONS", str(max_unaliased))

    return _apply


@pytest.fixture
def fake_store():
    from tests.fixtures.function_store import FakeFunctionStore

    return FakeFunctionStore()


@pytest.fixture
def fake_metadata():
    from tests.fixtures.function_store import FakeMetadataSource

    return FakeMetadataSource()


@pytest.fixture
def artifact(fake_store, fake_metadata) -> Callable[..., Any]:
    """Upload a bundle to the fake stores and return its location.

    Usage: artifact("orders/v1.zip", name="orders-api", body=b"...").
    """
    from tests.fixtures.deployer_builders import ARTIFACT_BUCKET, build_artifact_metadata, build_bundle

    def _put(key: str, *, body: Optional[bytes] = None, **metadata: Any):
        bundle = body if body is not None else build_bundle(f"# {key}\n")
        location = fake_store.put_artifact(ARTIFACT_BUCKET, key, bundle)
        fake_metadata.put(ARTIFACT_BUCKET, key, build_artifact_metadata(**metadata))
        return location

    return _put


@pytest.fixture
def load_module() -> Callable[[str], Dict[str, Any]]:
    import runpy

    def _apply(path: str = HANDLER_PATH) -> Dict[str, Any]:
        return runpy.run_path(path)

    return _apply


@pytest.fixture
def lambda_s3_stub(monkeypatch: pytest.MonkeyPatch) -> Callable[[], Tuple[Any, Any]]:
    """Patch boto3.client with call-recording Lambda and S3 stubs."""

    def _apply() -> Tuple[Any, Any]:
        from tests.fixtures.clients import BotoStub, LambdaClientStub, S3Stub

        lam = LambdaClientStub()
        s3 = S3Stub()
        boto_mock = BotoStub(s3=s3, lambda_=lam)
        monkeypatch.setattr("boto3.client", lambda service, **kwargs: boto_mock.client(service, **kwargs))
        return lam, s3

    return _apply


def pytest_configure(config):
    """Configure pytest with essential markers."""
    config.addinivalue_line("markers", "unit: unit test")
    config.addinivalue_line("markers", "integration: integration test")
    config.addinivalue_line("markers", "deployer: deployer test")


def pytest_collection_modifyitems(config, items):
    """Add markers based on file location."""
    rootdir = Path(config.rootdir)

    for item in items:
        try:
            rel_path = Path(item.fspath).relative_to(rootdir)
        except ValueError:
            continue
        if "unit" in rel_path.parts:
            item.add_marker(pytest.mark.unit)
        if "integration" in rel_path.parts:
            item.add_marker(pytest.mark.integration)
        if "deployer" in rel_path.parts:
            item.add_marker(pytest.mark.deployer)
