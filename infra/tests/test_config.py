"""Tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from stacks.config import Settings, get_settings


class TestDefaults:
    """Defaults reproduce the reference deployment."""

    def test_domains(self, settings: Settings) -> None:
        assert settings.managed_ad_domain_name == "managed-msad.non-97.net"
        assert settings.self_managed_ad_domain_name == "corp.non-97.net"

    def test_network(self, settings: Settings) -> None:
        assert settings.vpc_cidr == "10.0.1.0/24"
        assert settings.subnet_cidr_mask == 27
        assert settings.max_azs == 2
        assert settings.nat_gateways == 1

    def test_admin_secret(self, settings: Settings) -> None:
        assert (
            settings.admin_secret_name(settings.managed_ad_domain_name)
            == "/managedMSAD/managed-msad.non-97.net/Admin"
        )
        assert settings.admin_secret_template == '{"userName": "Admin"}'


class TestEnvironmentOverrides:
    """ADDS_* variables override defaults."""

    def test_scalar_override(
        self, settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ADDS_INSTANCE_TYPE", "t3.large")
        monkeypatch.setenv("ADDS_MAX_AZS", "3")
        monkeypatch.setenv("ADDS_VPC_CIDR", "10.0.0.0/22")

        loaded = Settings(_env_file=None)

        assert loaded.instance_type == "t3.large"
        assert loaded.max_azs == 3
        assert loaded.vpc_cidr == "10.0.0.0/22"

    def test_extra_zone_needs_larger_vpc(
        self, settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # 9 x /27 needs 288 addresses, a /24 only has 256
        monkeypatch.setenv("ADDS_MAX_AZS", "3")

        with pytest.raises(ValidationError, match="do not fit"):
            Settings(_env_file=None)

    def test_log_level_is_case_insensitive(
        self, settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ADDS_LOG_LEVEL", "debug")

        assert Settings(_env_file=None).log_level == "DEBUG"

    def test_tags_from_json(
        self, settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ADDS_TAGS", '{"Project": "lab", "Owner": "infra"}')

        assert Settings(_env_file=None).tags == {"Project": "lab", "Owner": "infra"}

    def test_env_file(self, settings: Settings, tmp_path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("ADDS_SELF_MANAGED_AD_DOMAIN_NAME=onprem.example.com\n")

        loaded = Settings(_env_file=env_file)

        assert loaded.self_managed_ad_domain_name == "onprem.example.com"

    def test_get_settings_is_cached(self, settings: Settings) -> None:
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


class TestValidation:
    """Invalid settings are rejected before any construct is declared."""

    def test_domain_names_normalized(self, settings: Settings) -> None:
        loaded = Settings(_env_file=None, managed_ad_domain_name=" Corp.Example.COM. ")

        assert loaded.managed_ad_domain_name == "corp.example.com"

    @pytest.mark.parametrize("cidr", ["10.0.0.0/8", "10.0.0.0/15", "10.0.1.0/29"])
    def test_vpc_prefix_outside_aws_range(self, settings: Settings, cidr: str) -> None:
        with pytest.raises(ValidationError, match="between /16 and /28"):
            Settings(_env_file=None, vpc_cidr=cidr)

    def test_directory_dns_ip_count_not_configurable(self, settings: Settings) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, directory_dns_ip_count=3)

    @pytest.mark.parametrize("cidr", ["10.0.1.0/33", "10.0.1.5/24", "not-a-cidr"])
    def test_invalid_vpc_cidr(self, settings: Settings, cidr: str) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, vpc_cidr=cidr)

    def test_duplicate_domains(self, settings: Settings) -> None:
        with pytest.raises(ValidationError, match="must differ"):
            Settings(
                _env_file=None,
                managed_ad_domain_name="corp.example.com",
                self_managed_ad_domain_name="CORP.example.com",
            )

    def test_single_label_domain(self, settings: Settings) -> None:
        with pytest.raises(ValidationError, match="fully qualified"):
            Settings(_env_file=None, managed_ad_domain_name="corp")

    def test_subnets_must_fit_vpc(self, settings: Settings) -> None:
        # 6 x /26 needs 384 addresses, a /24 only has 256
        with pytest.raises(ValidationError, match="do not fit"):
            Settings(_env_file=None, subnet_cidr_mask=26)

    def test_subnets_fit_larger_vpc(self, settings: Settings) -> None:
        loaded = Settings(_env_file=None, vpc_cidr="10.0.0.0/23", subnet_cidr_mask=26)

        assert loaded.subnet_cidr_mask == 26

    def test_nat_gateways_bounded_by_azs(self, settings: Settings) -> None:
        with pytest.raises(ValidationError, match="cannot exceed"):
            Settings(_env_file=None, nat_gateways=3)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("password_length", 7),
            ("password_length", 65),
            ("root_volume_size_gib", 20),
            ("directory_edition", "Premium"),
            ("log_level", "verbose"),
            ("max_azs", 0),
        ],
    )
    def test_out_of_range(self, settings: Settings, field: str, value) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})
