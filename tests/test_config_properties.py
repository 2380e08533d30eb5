"""Property-based tests for configuration models and loading.

Feature: catalog-sync
"""

import os
import tempfile
from pathlib import Path

import pytest
import structlog
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from catalog_sync.errors import CredentialNotFoundError
from catalog_sync.models import AppConfig, NotionConfig, ShopifyConfig, SyncConfig
from catalog_sync.sources.credentials import CredentialStore
from catalog_sync.utils.config_loader import ConfigLoader, ConfigurationError, merge_config

log = structlog.stdlib.get_logger()

VALID_CONFIG = """
notion:
  api_key: ${TEST_NOTION_API_KEY}
  database_id: ${TEST_NOTION_DATABASE_ID}
  page_size: 50

shopify:
  api_version: "2024-01"
  default_vendor: "Acme"
  accounts:
    main:
      shop_domain: ${TEST_SHOP_DOMAIN}
      access_token: "shpat_test"

sync:
  request_timeout_seconds: 10
  max_pages: 25
  include_unchanged: true
"""


def _write_config(content: str) -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write(content)
        return f.name


@given(st.integers(min_value=1, max_value=100))
def test_property_1_notion_page_size_bounds(page_size: int):
    """Property 1: Page sizes inside the API limits are accepted."""
    config = NotionConfig(api_key="key", database_id="db", page_size=page_size)
    assert config.page_size == page_size


@given(st.integers().filter(lambda x: x < 1 or x > 250))
def test_property_1_shopify_page_size_out_of_bounds(page_size: int):
    """Page sizes outside the Shopify limit are rejected."""
    with pytest.raises(ValidationError) as exc_info:
        ShopifyConfig(page_size=page_size)
    assert "page_size" in str(exc_info.value)


@given(st.floats(max_value=0, allow_nan=False))
def test_property_2_request_timeout_must_be_positive(timeout: float):
    """Property 2: Every request needs a positive timeout."""
    with pytest.raises(ValidationError):
        SyncConfig(request_timeout_seconds=timeout)


def test_sync_config_defaults():
    config = SyncConfig()

    assert config.request_timeout_seconds == 30.0
    assert config.max_pages == 1000
    assert config.include_unchanged is False
    assert config.render_descriptions is True


def test_property_3_environment_variable_loading():
    """Property 3: Environment variable loading.

    Nested settings can be supplied through CATALOG_SYNC_ variables.
    """
    keys = {
        "CATALOG_SYNC_NOTION__API_KEY": "secret_env",
        "CATALOG_SYNC_NOTION__DATABASE_ID": "db-env",
        "CATALOG_SYNC_SYNC__MAX_PAGES": "7",
    }
    os.environ.update(keys)

    try:
        config = AppConfig()

        assert config.notion.api_key == "secret_env"
        assert config.notion.database_id == "db-env"
        assert config.sync.max_pages == 7
        assert config.shopify.accounts == {}
    finally:
        for key in keys:
            os.environ.pop(key, None)


def test_property_4_configuration_file_parsing():
    """Property 4: Configuration file parsing with ${VAR} substitution."""
    os.environ["TEST_NOTION_API_KEY"] = "secret_test"
    os.environ["TEST_NOTION_DATABASE_ID"] = "db-123"
    os.environ["TEST_SHOP_DOMAIN"] = "acme.myshopify.com"
    temp_config_path = _write_config(VALID_CONFIG)

    try:
        config = ConfigLoader().load_config(temp_config_path)

        assert config.notion.api_key == "secret_test"
        assert config.notion.database_id == "db-123"
        assert config.notion.page_size == 50
        assert config.shopify.default_vendor == "Acme"
        assert config.shopify.accounts["main"].shop_domain == "acme.myshopify.com"
        assert config.sync.request_timeout_seconds == 10
        assert config.sync.max_pages == 25
        assert config.sync.include_unchanged is True
        assert config.logging.log_level == "INFO"
    finally:
        Path(temp_config_path).unlink(missing_ok=True)
        for key in ("TEST_NOTION_API_KEY", "TEST_NOTION_DATABASE_ID", "TEST_SHOP_DOMAIN"):
            os.environ.pop(key, None)


def test_property_5_missing_environment_variable_error():
    """Property 5: A missing environment variable is named in the error."""
    os.environ.pop("MISSING_REQUIRED_VAR", None)
    temp_config_path = _write_config(
        """
notion:
  api_key: ${MISSING_REQUIRED_VAR}
  database_id: "db"
"""
    )

    try:
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader().load_config(temp_config_path)
        assert "MISSING_REQUIRED_VAR" in str(exc_info.value)
    finally:
        Path(temp_config_path).unlink(missing_ok=True)


@given(st.integers(max_value=0))
def test_property_5_invalid_configuration_validation(max_pages: int):
    """Invalid values surface as ConfigurationError, not ValidationError."""
    temp_config_path = _write_config(
        f"""
notion:
  api_key: "key"
  database_id: "db"
sync:
  max_pages: {max_pages}
"""
    )

    try:
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader().load_config(temp_config_path)
        assert "max_pages" in str(exc_info.value)
    finally:
        Path(temp_config_path).unlink(missing_ok=True)


def test_missing_configuration_file():
    with pytest.raises(ConfigurationError, match="not found"):
        ConfigLoader().load_config("/nonexistent/catalog-sync.yaml")


def test_empty_configuration_file():
    temp_config_path = _write_config("")
    try:
        with pytest.raises(ConfigurationError, match="empty"):
            ConfigLoader().load_config(temp_config_path)
    finally:
        Path(temp_config_path).unlink(missing_ok=True)


def test_validate_config_warnings():
    config = AppConfig(
        notion=NotionConfig(api_key="key", database_id="db"),
        shopify=ShopifyConfig(
            accounts={"main": {"shop_domain": "shop.example.com", "access_token": "t"}}
        ),
        sync=SyncConfig(retry_base_delay=90.0, retry_max_delay=60.0, render_descriptions=False),
    )

    warnings = ConfigLoader().validate_config(config)

    assert len(warnings) == 3
    assert any("myshopify.com" in w for w in warnings)
    assert any("retry_base_delay" in w for w in warnings)
    assert any("render_descriptions" in w for w in warnings)


def test_validate_config_without_accounts():
    config = AppConfig(notion=NotionConfig(api_key="key", database_id="db"))

    warnings = ConfigLoader().validate_config(config)

    assert warnings == [
        "shopify.accounts is empty; every sync run will fail with a missing credential"
    ]


def test_credential_store_from_config():
    shopify = ShopifyConfig(
        accounts={"main": {"shop_domain": "acme.myshopify.com", "access_token": "shpat_1"}}
    )

    store = CredentialStore.from_config(shopify)
    credential = store.fetch_credential("main")

    assert "main" in store
    assert credential.shop_domain == "acme.myshopify.com"
    assert credential.access_token.get_secret_value() == "shpat_1"
    assert "shpat_1" not in repr(credential)

    with pytest.raises(CredentialNotFoundError) as exc_info:
        store.fetch_credential("other")
    assert exc_info.value.account_id == "other"


LAYERED_DEFAULT = """
notion:
  api_key: "key"
  database_id: ${TEST_DATABASE_ID:-db-default}
sync:
  max_pages: 100
  max_retries: 3
logging:
  log_level: ${TEST_LOG_LEVEL:-INFO}
"""


def test_environment_overlay_merges_over_defaults(tmp_path, monkeypatch):
    """An APP_ENV file only needs the settings it changes."""
    (tmp_path / "default.yaml").write_text(LAYERED_DEFAULT)
    (tmp_path / "staging.yaml").write_text("sync:\n  max_pages: 5\n")
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.delenv("TEST_DATABASE_ID", raising=False)
    monkeypatch.delenv("TEST_LOG_LEVEL", raising=False)

    config = ConfigLoader(config_dir=tmp_path).load_config()

    assert config.sync.max_pages == 5
    assert config.sync.max_retries == 3
    assert config.notion.database_id == "db-default"
    assert config.logging.log_level == "INFO"


def test_missing_overlay_falls_back_to_defaults(tmp_path, monkeypatch):
    (tmp_path / "default.yaml").write_text(LAYERED_DEFAULT)
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("TEST_LOG_LEVEL", "DEBUG")

    config = ConfigLoader(config_dir=tmp_path).load_config()

    assert config.sync.max_pages == 100
    assert config.logging.log_level == "DEBUG"


def test_missing_default_file_in_config_dir(tmp_path):
    with pytest.raises(ConfigurationError, match="default.yaml"):
        ConfigLoader(config_dir=tmp_path).load_config()


@given(
    st.dictionaries(st.sampled_from(["a", "b", "c"]), st.integers(), max_size=3),
    st.dictionaries(st.sampled_from(["b", "c", "d"]), st.integers(), max_size=3),
)
def test_merge_config_overlay_wins_and_keeps_base_keys(base: dict, overlay: dict):
    """Property 6: Overlay merge keeps every base key and lets the overlay win."""
    merged = merge_config({"section": base, "other": 1}, {"section": overlay})

    assert merged["other"] == 1
    assert merged["section"] == {**base, **overlay}
