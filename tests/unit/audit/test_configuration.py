"""Tests for audit configuration, settings and the default manager."""

import pytest
from pydantic import ValidationError

from audittrail.config import Settings
from audittrail.core.audit import (
    Audit,
    AuditConfiguration,
    AuditEntry,
    AuditEntryState,
    AuditManager,
    JsonAuditEntry,
    XmlAuditEntry,
)
from audittrail.core.errors import AuditConfigurationError


pytestmark = pytest.mark.unit


class TestSettings:
    """Tests for AUDIT_* settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.enabled is True
        assert settings.auto_save_format == "none"
        assert settings.auto_save_enabled is False
        assert settings.default_author == "system"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("AUDIT_AUTO_SAVE_FORMAT", "xml")
        monkeypatch.setenv("AUDIT_DEFAULT_AUTHOR", "batch-job")

        settings = Settings(_env_file=None)

        assert settings.auto_save_format == "xml"
        assert settings.auto_save_enabled is True
        assert settings.default_author == "batch-job"

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="chatty")

    def test_blank_author_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_author="   ")

    def test_invalid_auto_save_format_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, auto_save_format="csv")


class TestAuditConfiguration:
    """Tests for AuditConfiguration."""

    def test_defaults(self, configuration):
        assert configuration.is_enabled is True
        assert configuration.auto_save_set is None
        assert configuration.auto_save_action is None
        assert configuration.ignore_property_unchanged is True
        assert configuration.retain_entries is False

    @pytest.mark.parametrize(
        ("auto_save_format", "expected"),
        [("entries", AuditEntry), ("xml", XmlAuditEntry), ("json", JsonAuditEntry), ("none", None)],
    )
    def test_from_settings(self, auto_save_format, expected):
        settings = Settings(_env_file=None, auto_save_format=auto_save_format, enabled=False)

        configuration = AuditConfiguration.from_settings(settings)

        assert configuration.auto_save_set is expected
        assert configuration.is_enabled is False

    def test_auto_save_set_rejects_non_audit_class(self, configuration):
        with pytest.raises(AuditConfigurationError) as exc_info:
            configuration.auto_save_set = dict

        assert exc_info.value.error_code == "audit_configuration_error"
        assert exc_info.value.details["auto_save_set"] == "dict"

    def test_auto_save_set_rejects_instances(self):
        with pytest.raises(AuditConfigurationError):
            AuditConfiguration(auto_save_set=AuditEntry())

    def test_auto_save_set_accepts_custom_projection(self, configuration):
        class CsvAuditEntry:
            @classmethod
            def from_audit_entry(cls, entry):
                return cls()

        configuration.auto_save_set = CsvAuditEntry

        assert configuration.auto_save_set is CsvAuditEntry

    def test_is_ignored_maps_every_state(self):
        configuration = AuditConfiguration(
            ignore_entity_added=True,
            ignore_relationship_deleted=True,
        )

        assert configuration.is_ignored(AuditEntryState.ENTITY_ADDED)
        assert configuration.is_ignored(AuditEntryState.RELATIONSHIP_DELETED)
        for state in (
            AuditEntryState.ENTITY_MODIFIED,
            AuditEntryState.ENTITY_DELETED,
            AuditEntryState.ENTITY_SOFT_DELETED,
            AuditEntryState.RELATIONSHIP_ADDED,
        ):
            assert not configuration.is_ignored(state)

    def test_builder_methods_chain(self, configuration):
        result = configuration.exclude_entity(dict).include_property(dict, "a")

        assert result is configuration
        assert len(configuration.entity_rules) == 1
        assert len(configuration.property_rules) == 1


class TestAuditManager:
    """Tests for the process-wide default configuration."""

    def test_audit_copies_default_configuration(self):
        AuditManager.default_configuration.ignore_entity_deleted = True

        audit = Audit()
        audit.configuration.ignore_entity_deleted = False

        assert audit.configuration is not AuditManager.default_configuration
        assert AuditManager.default_configuration.ignore_entity_deleted is True

    def test_explicit_configuration_used_as_is(self, configuration):
        assert Audit(configuration=configuration).configuration is configuration

    def test_reset_default_configuration(self):
        settings = Settings(_env_file=None, auto_save_format="json")

        configuration = AuditManager.reset_default_configuration(settings)

        assert AuditManager.default_configuration is configuration
        assert configuration.auto_save_set is JsonAuditEntry
