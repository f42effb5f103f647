"""CDK Stacks package."""

from stacks.hybrid_dns_stack import HybridDnsStack
from stacks.managed_ad_stack import ManagedAdStack

__all__ = ["HybridDnsStack", "ManagedAdStack"]
