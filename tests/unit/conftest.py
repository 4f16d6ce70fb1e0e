"""
Shared fixtures for transform tests.

Provides configs and contexts pre-populated with model resources.
"""

from typing import Callable

import pytest

from firehose_transformer.graph import TransformContext
from firehose_transformer.helpers import TransformConfig
from firehose_transformer.model import ModelResourceGenerator
from tests.unit.fixtures import object_type


@pytest.fixture(autouse=True)
def log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pin LOG_LEVEL so debug lines stay out of captured output."""
    monkeypatch.setenv("LOG_LEVEL", "INFO")


@pytest.fixture
def config() -> TransformConfig:
    return TransformConfig(env_name=None, region="us-east-1", account_id="123456789012")


@pytest.fixture
def ctx(config: TransformConfig) -> TransformContext:
    """Fresh context containing only the API."""
    context = TransformContext(config=config)
    ModelResourceGenerator(context).before()
    return context


@pytest.fixture
def add_model(ctx: TransformContext) -> Callable[[str], list[str]]:
    """Generate @model resources for a type name, returning the resolver IDs."""

    def _add(type_name: str) -> list[str]:
        definition = object_type(f"type {type_name} @model {{ id: ID! }}")
        return ModelResourceGenerator(ctx).generate(definition)

    return _add
