"""Pytest fixtures for stack tests."""

import os
from collections.abc import Callable

import aws_cdk as cdk
import pytest
from constructs import Construct

from stacks.config import Settings


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Default settings, isolated from ADDS_* variables and .env files."""
    for key in list(os.environ):
        if key.startswith("ADDS_"):
            monkeypatch.delenv(key)
    return Settings(_env_file=None)


@pytest.fixture
def app() -> cdk.App:
    """Fresh CDK app per test."""
    return cdk.App()


@pytest.fixture
def logical_id() -> Callable[[cdk.Stack, Construct], str]:
    """Resolve the logical ID of an L1 resource or of an L2's default child."""

    def _logical_id(stack: cdk.Stack, construct: Construct) -> str:
        if isinstance(construct, cdk.CfnElement):
            return stack.get_logical_id(construct)
        return stack.get_logical_id(construct.node.default_child)

    return _logical_id
