"""Application configuration and settings.

Objective:
    Provide a single source of truth for runtime configuration used by the
    provider clients and the canonical taxonomy loader.

Responsibilities:
    - Load environment-driven settings via :class:`Settings` (Pydantic
      BaseSettings).
    - Describe the native limits of each supported mailbox provider
      (:class:`ProviderConfig`), used to validate canonical taxonomies before
      reconciliation and provisioning.

High-level call tree:
    - :func:`get_settings` -> returns :class:`Settings`
    - :func:`get_provider_config` -> returns :class:`ProviderConfig`
    - :func:`setup_logging` (optional, for applications embedding the engine)

Operational notes:
    - ``Settings`` loads from ``.env`` by default via ``pydantic-settings``.
    - Modules accept a ``Settings`` object explicitly to enable testing; the
      orchestrator falls back to :func:`get_settings` when not provided.
"""

from enum import Enum
from typing import Optional
import logging
import sys

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class ProviderName(str, Enum):
    """Mailbox providers supported by the engine.

    The Enum values are the identifiers used in credentials and results.
    """

    GMAIL = "gmail"
    OUTLOOK = "outlook"


class ProviderConfig(BaseModel):
    """Native limits and conventions of a mailbox provider.

    Attributes:
        name: Provider identifier.
        delimiter: Hierarchy delimiter used in full display names.
        max_depth: Deepest nesting level the engine will provision.
        max_name_length: Longest full display name accepted by the provider.
        supports_color: Whether created items can carry a color.
    """

    name: ProviderName
    delimiter: str
    max_depth: int = Field(default=5, ge=1)
    max_name_length: int = Field(default=225, ge=1)
    supports_color: bool = False


PROVIDER_CONFIGS: dict[ProviderName, ProviderConfig] = {
    ProviderName.GMAIL: ProviderConfig(
        name=ProviderName.GMAIL,
        delimiter="/",
        max_depth=5,
        max_name_length=225,
        supports_color=True,
    ),
    ProviderName.OUTLOOK: ProviderConfig(
        name=ProviderName.OUTLOOK,
        delimiter="\\",
        max_depth=5,
        max_name_length=255,
        supports_color=False,
    ),
}


def get_provider_config(provider: "ProviderName | str") -> ProviderConfig:
    """Return the limits for a provider.

    Args:
        provider: Provider enum member or its string value.

    Returns:
        ProviderConfig: Provider limits.

    Raises:
        ValueError: If the provider is not supported.
    """
    return PROVIDER_CONFIGS[ProviderName(provider)]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The settings model is intentionally flat and human-editable via `.env`.

    Attributes:
        gmail_api_base_url: Base URL of the Gmail REST API.
        graph_base_url: Base URL of Microsoft Graph.
        request_timeout: Timeout in seconds for every provider request.
        page_size: Page size requested from paginated provider endpoints.
        gmail_label_text_color: Text color sent alongside a label background.
        default_business_type: Canonical taxonomy used when none is requested.
        taxonomy_file: Optional path overriding the bundled taxonomy document.
        log_level: Logging level.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    gmail_api_base_url: str = Field(
        default="https://gmail.googleapis.com/gmail/v1",
        description="Gmail REST API base URL",
    )
    graph_base_url: str = Field(
        default="https://graph.microsoft.com/v1.0",
        description="Microsoft Graph base URL",
    )
    request_timeout: float = Field(
        default=30, gt=0, description="Provider request timeout in seconds"
    )
    page_size: int = Field(
        default=100, ge=1, le=1000, description="Items per page for list calls"
    )
    gmail_label_text_color: str = Field(
        default="#000000",
        description="Text color paired with a label background color on creation",
    )

    default_business_type: str = Field(
        default="default", description="Canonical taxonomy business type"
    )
    taxonomy_file: Optional[str] = Field(
        default=None,
        description=(
            "Path to a JSON canonical taxonomy document. "
            "If omitted, the document bundled with the package is used."
        ),
    )
    log_level: str = Field(default="INFO", description="Logging level")


def get_settings() -> Settings:
    """
    Load and return application settings.

    For tests, construct a :class:`Settings` instance directly or pass a
    mocked settings object.

    Returns:
        Settings: Application settings instance.

    Raises:
        ValidationError: If an environment variable has an invalid value.
    """
    return Settings()


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging for an application embedding the engine.

    The package itself never installs handlers; its modules only log through
    module-level loggers.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR), usually
            ``Settings.log_level``.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )
    # urllib3 logs every connection at DEBUG; keep it quiet unless asked for.
    if level.upper() != "DEBUG":
        logging.getLogger("urllib3").setLevel(logging.WARNING)
