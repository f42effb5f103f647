"""Constructs shared by the directory stacks."""

from collections.abc import Mapping

import aws_cdk as cdk
from aws_cdk import (
    Fn,
    aws_directoryservice as directoryservice,
    aws_ec2 as ec2,
    aws_iam as iam,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct

from stacks.config import Settings
from stacks.logger import get_logger

logger = get_logger(__name__)

JOIN_DOMAIN_DOCUMENT = "AWS-JoinDirectoryServiceDomain"


def build_vpc(
    scope: Construct,
    settings: Settings,
    gateway_endpoints: Mapping[str, ec2.GatewayVpcEndpointOptions] | None = None,
) -> ec2.Vpc:
    """VPC with Public, Private (NAT-routed) and Isolated subnets in every AZ."""
    logger.debug(
        "VPC %s: %d AZs, /%d subnets, %d NAT gateway(s)",
        settings.vpc_cidr,
        settings.max_azs,
        settings.subnet_cidr_mask,
        settings.nat_gateways,
    )
    return ec2.Vpc(
        scope,
        "VPC",
        ip_addresses=ec2.IpAddresses.cidr(settings.vpc_cidr),
        enable_dns_hostnames=True,
        enable_dns_support=True,
        nat_gateways=settings.nat_gateways,
        max_azs=settings.max_azs,
        subnet_configuration=[
            ec2.SubnetConfiguration(
                name="Public",
                subnet_type=ec2.SubnetType.PUBLIC,
                cidr_mask=settings.subnet_cidr_mask,
            ),
            ec2.SubnetConfiguration(
                name="Private",
                subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                cidr_mask=settings.subnet_cidr_mask,
            ),
            ec2.SubnetConfiguration(
                name="Isolated",
                subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                cidr_mask=settings.subnet_cidr_mask,
            ),
        ],
        gateway_endpoints=dict(gateway_endpoints) if gateway_endpoints else None,
    )


def isolated_subnet_ids(vpc: ec2.Vpc) -> list[str]:
    """Subnet IDs of the Isolated tier, one per AZ."""
    return vpc.select_subnets(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED).subnet_ids


def ssm_instance_role(
    scope: Construct,
    construct_id: str,
    directory_access: bool = False,
) -> iam.Role:
    """EC2 role limited to Session Manager (and optionally domain join)."""
    policy_names = ["AmazonSSMManagedInstanceCore"]
    if directory_access:
        policy_names.append("AmazonSSMDirectoryServiceAccess")

    return iam.Role(
        scope,
        construct_id,
        assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
        managed_policies=[
            iam.ManagedPolicy.from_aws_managed_policy_name(name)
            for name in policy_names
        ],
    )


def directory_admin_secret(
    scope: Construct,
    settings: Settings,
) -> secretsmanager.Secret:
    """Generated admin credentials for the Managed Microsoft AD."""
    secret_name = settings.admin_secret_name(settings.managed_ad_domain_name)
    logger.debug(
        "Admin secret %s (generated, %d chars)", secret_name, settings.password_length
    )

    return secretsmanager.Secret(
        scope,
        "Secret of Managed Microsoft AD",
        secret_name=secret_name,
        generate_secret_string=secretsmanager.SecretStringGenerator(
            generate_string_key="password",
            password_length=settings.password_length,
            require_each_included_type=True,
            secret_string_template=settings.admin_secret_template,
        ),
    )


def managed_microsoft_ad(
    scope: Construct,
    settings: Settings,
    vpc: ec2.Vpc,
    secret: secretsmanager.ISecret,
) -> directoryservice.CfnMicrosoftAD:
    """Managed Microsoft AD in the Isolated subnets.

    The password is a dynamic reference resolved by CloudFormation, so the
    generated value never appears in the template.
    """
    logger.debug(
        "Managed Microsoft AD %s (%s edition)",
        settings.managed_ad_domain_name,
        settings.directory_edition,
    )
    password = cdk.CfnDynamicReference(
        cdk.CfnDynamicReferenceService.SECRETS_MANAGER,
        f"{secret.secret_arn}:SecretString:password",
    )

    return directoryservice.CfnMicrosoftAD(
        scope,
        "Managed Microsoft AD",
        name=settings.managed_ad_domain_name,
        password=password.to_string(),
        vpc_settings=directoryservice.CfnMicrosoftAD.VpcSettingsProperty(
            subnet_ids=isolated_subnet_ids(vpc),
            vpc_id=vpc.vpc_id,
        ),
        create_alias=True,
        edition=settings.directory_edition,
        enable_sso=False,
    )


def directory_dns_ips(
    directory: directoryservice.CfnMicrosoftAD,
    count: int,
) -> list[str]:
    """One token per domain controller DNS address.

    DnsIpAddresses is a list attribute whose length is only known at deploy
    time; Managed Microsoft AD always runs `count` domain controllers.
    """
    return [
        Fn.select(index, directory.attr_dns_ip_addresses) for index in range(count)
    ]


def windows_instance(
    scope: Construct,
    construct_id: str,
    settings: Settings,
    vpc: ec2.Vpc,
    subnet_type: ec2.SubnetType,
    role: iam.IRole,
) -> ec2.Instance:
    """Windows Server 2022 instance with a gp3 root volume."""
    logger.debug(
        "Windows instance '%s' (%s) in %s subnets",
        construct_id,
        settings.instance_type,
        subnet_type,
    )

    return ec2.Instance(
        scope,
        construct_id,
        instance_type=ec2.InstanceType(settings.instance_type),
        machine_image=ec2.MachineImage.latest_windows(
            ec2.WindowsVersion.WINDOWS_SERVER_2022_ENGLISH_FULL_BASE
        ),
        vpc=vpc,
        block_devices=[
            ec2.BlockDevice(
                device_name="/dev/sda1",
                volume=ec2.BlockDeviceVolume.ebs(
                    settings.root_volume_size_gib,
                    volume_type=ec2.EbsDeviceVolumeType.GP3,
                ),
            ),
        ],
        propagate_tags_to_volume_on_creation=True,
        vpc_subnets=ec2.SubnetSelection(subnet_type=subnet_type),
        role=role,
    )


def add_directory_outputs(
    stack: cdk.Stack,
    vpc: ec2.Vpc,
    directory: directoryservice.CfnMicrosoftAD,
    secret: secretsmanager.ISecret,
) -> None:
    """Outputs common to every stack hosting a Managed Microsoft AD."""
    cdk.CfnOutput(stack, "VpcId", value=vpc.vpc_id, description="VPC ID")

    cdk.CfnOutput(
        stack,
        "DirectoryId",
        value=directory.ref,
        description="Managed Microsoft AD directory ID",
    )

    cdk.CfnOutput(
        stack,
        "DirectoryDnsIps",
        value=Fn.join(",", directory.attr_dns_ip_addresses),
        description="Managed Microsoft AD DNS IP addresses",
    )

    cdk.CfnOutput(
        stack,
        "AdminSecretArn",
        value=secret.secret_arn,
        description="Directory admin credentials secret ARN",
    )


def apply_tags(scope: Construct, tags: Mapping[str, str]) -> None:
    """Tag every taggable resource under scope."""
    for key, value in tags.items():
        cdk.Tags.of(scope).add(key, value)
