"""Hybrid DNS stack - Managed Microsoft AD and a self-managed AD behind Route 53 Resolver."""

import aws_cdk as cdk
from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    aws_route53resolver as route53resolver,
)
from constructs import Construct

from stacks.common import (
    add_directory_outputs,
    build_vpc,
    directory_admin_secret,
    directory_dns_ips,
    isolated_subnet_ids,
    managed_microsoft_ad,
    ssm_instance_role,
    windows_instance,
)
from stacks.config import DIRECTORY_DNS_IP_COUNT, Settings
from stacks.logger import get_logger

logger = get_logger(__name__)

DNS_PORT = 53


class HybridDnsStack(Stack):
    """Stack forwarding DNS queries for each AD domain to its own DNS servers.

    Queries for the managed domain go to the Managed Microsoft AD domain
    controllers; queries for the self-managed domain go to the EC2 instance
    standing in for an on-premises domain controller.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # EC2 Instance IAM Role
        instance_role = ssm_instance_role(self, "EC2 Instance IAM Role")

        # VPC
        self.vpc = build_vpc(self, settings)

        # Security Group for the outbound resolver endpoint
        self.resolver_security_group = ec2.SecurityGroup(
            self,
            "Resolver Endpoint SG",
            vpc=self.vpc,
        )
        self.resolver_security_group.add_ingress_rule(
            ec2.Peer.ipv4(self.vpc.vpc_cidr_block),
            ec2.Port.tcp(DNS_PORT),
            "DNS over TCP from the VPC",
        )
        self.resolver_security_group.add_ingress_rule(
            ec2.Peer.ipv4(self.vpc.vpc_cidr_block),
            ec2.Port.udp(DNS_PORT),
            "DNS over UDP from the VPC",
        )

        # Managed Microsoft AD
        self.admin_secret = directory_admin_secret(self, settings)
        self.directory = managed_microsoft_ad(self, settings, self.vpc, self.admin_secret)

        # EC2 Instances
        self.self_managed_ad_instance = windows_instance(
            self,
            "Self Managed AD EC2 Instance",
            settings,
            self.vpc,
            ec2.SubnetType.PRIVATE_WITH_EGRESS,
            instance_role,
        )
        self.client_instance = windows_instance(
            self,
            "Managed Microsoft AD Client",
            settings,
            self.vpc,
            ec2.SubnetType.PRIVATE_WITH_EGRESS,
            instance_role,
        )

        # Route 53 Resolver
        self.resolver_endpoint = route53resolver.CfnResolverEndpoint(
            self,
            "Resolver Endpoint",
            direction="OUTBOUND",
            ip_addresses=[
                route53resolver.CfnResolverEndpoint.IpAddressRequestProperty(
                    subnet_id=subnet_id
                )
                for subnet_id in isolated_subnet_ids(self.vpc)
            ],
            security_group_ids=[self.resolver_security_group.security_group_id],
        )

        self.managed_ad_rule = self._forward_rule(
            "Managed Microsoft AD Resolver Rule",
            settings.managed_ad_domain_name,
            directory_dns_ips(self.directory, DIRECTORY_DNS_IP_COUNT),
        )
        self.self_managed_ad_rule = self._forward_rule(
            "Self Managed AD Resolver Rule",
            settings.self_managed_ad_domain_name,
            [self.self_managed_ad_instance.instance_private_ip],
        )

        # Outputs
        add_directory_outputs(self, self.vpc, self.directory, self.admin_secret)

        cdk.CfnOutput(
            self,
            "ResolverEndpointId",
            value=self.resolver_endpoint.ref,
            description="Outbound Route 53 Resolver endpoint ID",
        )

        cdk.CfnOutput(
            self,
            "SelfManagedAdPrivateIp",
            value=self.self_managed_ad_instance.instance_private_ip,
            description="Private IP of the self-managed AD instance",
        )

        logger.info(
            "%s: forwarding %s and %s through %s",
            construct_id,
            settings.managed_ad_domain_name,
            settings.self_managed_ad_domain_name,
            settings.vpc_cidr,
        )

    def _forward_rule(
        self,
        construct_id: str,
        domain_name: str,
        target_ips: list[str],
    ) -> route53resolver.CfnResolverRule:
        """FORWARD rule for one domain, associated with the stack VPC."""
        logger.debug("Resolver rule %s -> %d target(s)", domain_name, len(target_ips))

        rule = route53resolver.CfnResolverRule(
            self,
            construct_id,
            domain_name=domain_name,
            rule_type="FORWARD",
            resolver_endpoint_id=self.resolver_endpoint.ref,
            target_ips=[
                route53resolver.CfnResolverRule.TargetAddressProperty(
                    ip=ip, port=str(DNS_PORT)
                )
                for ip in target_ips
            ],
        )

        route53resolver.CfnResolverRuleAssociation(
            self,
            f"{construct_id} Association",
            resolver_rule_id=rule.ref,
            vpc_id=self.vpc.vpc_id,
        )
        return rule
