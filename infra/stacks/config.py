"""Infrastructure configuration using pydantic-settings."""

import ipaddress
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Public, Private and Isolated subnets are created in every availability zone
SUBNET_TIERS = 3

# CloudFormation creates every Managed Microsoft AD with two domain controllers
DIRECTORY_DNS_IP_COUNT = 2


class Settings(BaseSettings):
    """Infrastructure settings loaded from ADDS_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ADDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Directory
    managed_ad_domain_name: str = "managed-msad.non-97.net"
    self_managed_ad_domain_name: str = "corp.non-97.net"
    admin_user_name: str = "Admin"
    password_length: int = Field(default=32, ge=8, le=64)
    directory_edition: Literal["Standard", "Enterprise"] = "Standard"

    # Network
    vpc_cidr: str = "10.0.1.0/24"
    subnet_cidr_mask: int = Field(default=27, ge=16, le=28)
    max_azs: int = Field(default=2, ge=1, le=6)
    nat_gateways: int = Field(default=1, ge=0)

    # Compute
    instance_type: str = "t3.micro"
    root_volume_size_gib: int = Field(default=30, ge=30)

    # App
    aws_region: str = "us-east-1"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    tags: dict[str, str] = {"Project": "adds", "ManagedBy": "cdk"}

    @field_validator("vpc_cidr")
    @classmethod
    def _check_vpc_cidr(cls, value: str) -> str:
        network = ipaddress.IPv4Network(value)
        if not 16 <= network.prefixlen <= 28:
            raise ValueError(f"VPC CIDR {network} must be between /16 and /28")
        return str(network)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value

    @field_validator("managed_ad_domain_name", "self_managed_ad_domain_name")
    @classmethod
    def _normalize_domain(cls, value: str) -> str:
        value = value.strip().rstrip(".").lower()
        if not value or "." not in value:
            raise ValueError(f"'{value}' is not a fully qualified domain name")
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        if self.managed_ad_domain_name == self.self_managed_ad_domain_name:
            raise ValueError(
                "managed_ad_domain_name and self_managed_ad_domain_name must differ"
            )

        if self.nat_gateways > self.max_azs:
            raise ValueError(
                f"nat_gateways ({self.nat_gateways}) cannot exceed max_azs ({self.max_azs})"
            )

        vpc_prefix = ipaddress.IPv4Network(self.vpc_cidr).prefixlen
        if self.subnet_cidr_mask < vpc_prefix:
            raise ValueError(
                f"subnet_cidr_mask /{self.subnet_cidr_mask} is larger than the VPC /{vpc_prefix}"
            )
        required = SUBNET_TIERS * self.max_azs * 2 ** (32 - self.subnet_cidr_mask)
        available = 2 ** (32 - vpc_prefix)
        if required > available:
            raise ValueError(
                f"{SUBNET_TIERS * self.max_azs} subnets of /{self.subnet_cidr_mask} "
                f"do not fit in {self.vpc_cidr}"
            )
        return self

    def admin_secret_name(self, domain_name: str) -> str:
        """Secrets Manager name holding the directory admin credentials."""
        return f"/managedMSAD/{domain_name}/Admin"

    @property
    def admin_secret_template(self) -> str:
        """Static part of the generated admin secret."""
        return f'{{"userName": "{self.admin_user_name}"}}'


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
