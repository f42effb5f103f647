#!/usr/bin/env python3
"""CDK App entry point for the Active Directory DNS infrastructure."""

import os

import aws_cdk as cdk
from pydantic import ValidationError

from stacks.common import apply_tags
from stacks.config import get_settings
from stacks.hybrid_dns_stack import HybridDnsStack
from stacks.logger import configure_logging, get_logger
from stacks.managed_ad_stack import ManagedAdStack

logger = get_logger("app")

try:
    settings = get_settings()
except ValidationError as exc:
    configure_logging()
    logger.error("Invalid ADDS_* configuration:\n%s", exc)
    raise

configure_logging(settings.log_level)

app = cdk.App()

env = cdk.Environment(
    account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
    region=os.environ.get("CDK_DEFAULT_REGION", settings.aws_region),
)

apply_tags(app, settings.tags)

# Managed Microsoft AD + self-managed AD behind Route 53 Resolver rules
HybridDnsStack(app, "AddsStack", settings=settings, env=env)

# Managed Microsoft AD as the VPC DNS, with a domain-joined instance
ManagedAdStack(app, "ManagedMsadStack", settings=settings, env=env)

app.synth()
