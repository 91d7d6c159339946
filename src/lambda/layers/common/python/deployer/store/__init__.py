"""Backing-store interfaces and their AWS implementations."""

from .contracts import FunctionStore, MetadataSource
from .lambda_store import LambdaFunctionStore, S3MetadataSource

__all__ = ["FunctionStore", "MetadataSource", "LambdaFunctionStore", "S3MetadataSource"]
