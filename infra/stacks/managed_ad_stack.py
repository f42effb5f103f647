"""Managed directory stack - Managed Microsoft AD as the VPC DNS, plus a joined instance."""

import aws_cdk as cdk
from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    aws_iam as iam,
)
from constructs import Construct

from stacks.common import (
    JOIN_DOMAIN_DOCUMENT,
    add_directory_outputs,
    build_vpc,
    directory_admin_secret,
    managed_microsoft_ad,
    ssm_instance_role,
    windows_instance,
)
from stacks.config import Settings
from stacks.logger import get_logger

logger = get_logger(__name__)


class ManagedAdStack(Stack):
    """Stack for a Managed Microsoft AD serving DNS for the whole VPC."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # EC2 Instance IAM Role
        instance_role = ssm_instance_role(
            self,
            "EC2 Instance IAM Role",
            directory_access=True,
        )

        # AWS management console login IAM Role
        self.console_login_role = iam.Role(
            self,
            "AWS management console login IAM Role",
            assumed_by=iam.ServicePrincipal("ds.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name("AmazonEC2ReadOnlyAccess"),
            ],
        )

        # VPC
        self.vpc = build_vpc(
            self,
            settings,
            gateway_endpoints={
                "S3": ec2.GatewayVpcEndpointOptions(
                    service=ec2.GatewayVpcEndpointAwsService.S3,
                ),
            },
        )

        # Managed Microsoft AD
        self.admin_secret = directory_admin_secret(self, settings)
        self.directory = managed_microsoft_ad(self, settings, self.vpc, self.admin_secret)

        # DHCP Options
        self.dhcp_options = ec2.CfnDHCPOptions(
            self,
            "DHCP Options",
            domain_name=self.directory.name,
            domain_name_servers=self.directory.attr_dns_ip_addresses,
        )

        ec2.CfnVPCDHCPOptionsAssociation(
            self,
            "VPC DHCP Options Association",
            dhcp_options_id=self.dhcp_options.ref,
            vpc_id=self.vpc.vpc_id,
        )

        # EC2 Instance
        self.instance = windows_instance(
            self,
            "EC2 Instance",
            settings,
            self.vpc,
            ec2.SubnetType.PUBLIC,
            instance_role,
        )

        # Join directory service domain
        cfn_instance: ec2.CfnInstance = self.instance.node.default_child
        cfn_instance.ssm_associations = [
            ec2.CfnInstance.SsmAssociationProperty(
                document_name=JOIN_DOMAIN_DOCUMENT,
                association_parameters=[
                    ec2.CfnInstance.AssociationParameterProperty(
                        key="directoryId",
                        value=[self.directory.ref],
                    ),
                    ec2.CfnInstance.AssociationParameterProperty(
                        key="directoryName",
                        value=[self.directory.name],
                    ),
                ],
            ),
        ]

        # Outputs
        add_directory_outputs(self, self.vpc, self.directory, self.admin_secret)

        cdk.CfnOutput(
            self,
            "InstanceId",
            value=self.instance.instance_id,
            description="Domain-joined EC2 instance ID",
        )

        logger.info(
            "%s: VPC DNS served by %s",
            construct_id,
            settings.managed_ad_domain_name,
        )
