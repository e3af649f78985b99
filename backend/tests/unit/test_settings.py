"""
Unit tests for Pydantic Settings configuration.

Tests derived settings: database URL normalization and product mapping.
"""

from aisaas.config.settings import Settings


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_loads_from_env(self):
        """Values exported by the test configuration are picked up."""
        from aisaas.config.settings import settings

        assert settings.polar_webhook_secret == "whsec_test_secret"
        assert settings.auth_jwt_secret is not None

    def test_is_development_property(self):
        settings = Settings(environment="development")
        assert settings.is_development is True
        assert settings.is_production is False

    def test_postgres_url_rewritten_to_asyncpg(self):
        settings = Settings(database_url="postgresql://u:p@localhost:5432/db")
        assert settings.database_url == "postgresql+asyncpg://u:p@localhost:5432/db"

        settings = Settings(database_url="postgres://u:p@localhost/db")
        assert settings.database_url == "postgresql+asyncpg://u:p@localhost/db"

    def test_other_urls_untouched(self):
        settings = Settings(database_url="sqlite+aiosqlite:///./local.db")
        assert settings.database_url == "sqlite+aiosqlite:///./local.db"

    def test_product_plan_map_skips_unset_products(self):
        settings = Settings(
            polar_product_free=None,
            polar_product_pro="prod_a",
            polar_product_startup="prod_b",
        )
        assert settings.product_plan_map == {"prod_a": "pro", "prod_b": "startup"}
