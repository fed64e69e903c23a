"""
Configuration management using pydantic-settings.

- Loads from environment variables.
- Also loads from a `.env` file in the current working directory.
"""

from typing import Optional, Tuple

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, EnvSettingsSource

DEFAULT_POST_TYPE_IGNORELIST = ("attachment", "nav_menu_item", "revision")
DEFAULT_TAXONOMY_IGNORELIST = ("nav_menu", "link_category", "post_format")


class LenientEnvSettingsSource(EnvSettingsSource):
    """Env source that falls back to raw strings for complex values."""

    def decode_complex_value(self, field_name, field, value):  # type: ignore[override]
        try:
            return super().decode_complex_value(field_name, field, value)
        except ValueError:
            return value


class Settings(BaseSettings):
    # WordPress
    wp_base_url: Optional[AnyHttpUrl] = Field(
        default=None,
        alias="WP_BASE_URL",
        description="Base URL of the WordPress site, e.g. https://example.com",
    )
    wp_username: Optional[str] = Field(
        default=None,
        alias="WP_USERNAME",
        description="WordPress username for Application Password auth",
    )
    wp_app_password: Optional[str] = Field(
        default=None,
        alias="WP_APP_PASSWORD",
        description="WordPress Application Password",
    )
    wp_path: Optional[str] = Field(
        default=None,
        alias="WP_PATH",
        description="Filesystem path of the WordPress installation (plugin check)",
    )
    wp_request_timeout: float = Field(
        default=10.0,
        alias="WP_REQUEST_TIMEOUT",
        description="Timeout in seconds for WordPress REST calls",
    )

    # Shop
    store_id: int = Field(
        default=0,
        alias="WP_STORE_ID",
        description="Default store identifier used to scope cache entries",
    )
    cache_dir: Optional[str] = Field(
        default=None,
        alias="CACHE_DIR",
        description="Directory for the file cache; in-memory cache when unset",
    )

    # Normalization
    post_type_ignorelist: Tuple[str, ...] = Field(
        default=DEFAULT_POST_TYPE_IGNORELIST,
        alias="POST_TYPE_IGNORELIST",
        description="Comma-separated post types that are never integrated.",
    )
    taxonomy_ignorelist: Tuple[str, ...] = Field(
        default=DEFAULT_TAXONOMY_IGNORELIST,
        alias="TAXONOMY_IGNORELIST",
        description="Comma-separated taxonomies that are never integrated.",
    )
    cpt_permalink_plugin: str = Field(
        default="custom-post-type-permalinks/custom-post-type-permalinks.php",
        alias="CPT_PERMALINK_PLUGIN",
        description="Plugin file whose per-type permalink options are honoured",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            LenientEnvSettingsSource(settings_cls),
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _parse_list_field(value, *, default):
        if value is None:
            return default
        if isinstance(value, str):
            items = [item.strip() for item in value.split(",") if item.strip()]
            return tuple(items) if items else default
        if isinstance(value, (list, tuple, set)):
            items = [str(item).strip() for item in value if str(item).strip()]
            return tuple(items) if items else default
        return value

    @field_validator("post_type_ignorelist", mode="before")
    @classmethod
    def _parse_post_type_ignorelist(cls, value):
        return cls._parse_list_field(value, default=DEFAULT_POST_TYPE_IGNORELIST)

    @field_validator("taxonomy_ignorelist", mode="before")
    @classmethod
    def _parse_taxonomy_ignorelist(cls, value):
        return cls._parse_list_field(value, default=DEFAULT_TAXONOMY_IGNORELIST)


settings = Settings()
"""
Singleton settings object used across modules.

Usage:
    from . import config
    config.settings.wp_base_url
    config.settings.store_id
"""
