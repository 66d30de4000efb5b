"""
Tests for the settings and their security validation.
"""

from rexera.config import Settings

STRONG_SECRET = "s" * 32


def make_settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


class TestValidateSecurity:
    """Test Settings.validate_security."""

    def test_production_without_secrets(self):
        errors = make_settings(
            environment="production",
            skip_auth=True,
            n8n_webhook_secret="",
            cron_secret="",
            supabase_service_role_key="",
            supabase_url="https://project.supabase.co",
        ).validate_security()

        critical = [e for e in errors if e.startswith("CRITICAL")]
        assert len(critical) == 4
        assert any("SKIP_AUTH" in e for e in critical)
        assert any("CRON_SECRET" in e for e in critical)

    def test_production_fully_configured(self):
        errors = make_settings(
            environment="production",
            skip_auth=False,
            n8n_webhook_secret=STRONG_SECRET,
            cron_secret="cron-key",
            supabase_service_role_key="service-key",
            supabase_url="https://project.supabase.co",
            cors_allowed_origins="https://app.rexera.com",
        ).validate_security()

        assert errors == []

    def test_warnings_outside_production(self):
        errors = make_settings(
            environment="development",
            skip_auth=False,
            supabase_url="",
            n8n_webhook_secret="short",
            cors_allowed_origins="*",
        ).validate_security()

        assert all(e.startswith("WARNING") for e in errors)
        assert len(errors) == 3


class TestComputedSettings:
    """Test the derived properties."""

    def test_postgres_dsn_prefers_database_url(self):
        settings = make_settings(database_url="postgresql://u:p@db:5432/rexera")
        assert settings.postgres_dsn == "postgresql://u:p@db:5432/rexera"

    def test_postgres_dsn_from_parts(self):
        settings = make_settings(
            database_url=None,
            postgres_host="db",
            postgres_user="rexera",
            postgres_pass="pw",
            postgres_db="workflows",
        )
        assert settings.postgres_dsn == "postgresql://rexera:pw@db:5432/workflows"

    def test_redis_url(self):
        assert make_settings(redis_password=None, redis_host="cache").redis_url == "redis://cache:6379/0"
        assert make_settings(redis_password="pw", redis_host="cache").redis_url == "redis://:pw@cache:6379/0"

    def test_n8n_enabled_needs_url_and_key(self):
        assert make_settings(n8n_base_url="http://n8n", n8n_api_key="").n8n_enabled is False
        assert make_settings(n8n_base_url="http://n8n", n8n_api_key="key").n8n_enabled is True

    def test_n8n_workflow_ids(self):
        settings = make_settings(n8n_payoff_workflow_id="wf-payoff")
        assert settings.n8n_workflow_ids["PAYOFF_REQUEST"] == "wf-payoff"
        assert set(settings.n8n_workflow_ids) == {"PAYOFF_REQUEST", "HOA_ACQUISITION", "MUNI_LIEN_SEARCH"}

    def test_cors_origins(self):
        settings = make_settings(cors_allowed_origins=" https://a.example , ,https://b.example")
        assert settings.cors_origins == ["https://a.example", "https://b.example"]
