"""Runtime configuration for the mailhub client application.

Settings have usable defaults and can be overridden from ``MAILHUB_*``
environment variables (a ``.env`` file is honoured through python-dotenv).
"""

import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "MAILHUB_"


class Settings(BaseModel):
    """Application settings.

    Attributes:
        api_base_url: Base URL of the backend REST API.
        timeout: Per-request timeout in seconds.
        retry_enabled: Retry transient failures with exponential backoff.
        max_retries: Maximum retry attempts when retry is enabled.
        page_size: Default page size for email listings.
        confirm_timeout: Upper bound in seconds for confirming an account's
            status before a sync job is started.
        confirm_poll_interval: First delay of the confirmation poll; doubled
            after every unconfirmed attempt.
        reload_delay: Seconds to wait after a sync job starts before the
            email list is reloaded.
        test_result_display_seconds: How long a connection test result is
            shown before it is cleared.
    """

    api_base_url: str = Field("http://localhost:5000/api", description="Backend API base URL")
    timeout: float = Field(30.0, gt=0)
    retry_enabled: bool = False
    max_retries: int = Field(3, ge=0)
    page_size: int = Field(20, ge=1)
    confirm_timeout: float = Field(10.0, ge=0)
    confirm_poll_interval: float = Field(0.5, gt=0)
    reload_delay: float = Field(2.0, ge=0)
    test_result_display_seconds: float = Field(5.0, ge=0)

    @classmethod
    def from_env(cls, dotenv: bool = True, **overrides: Any) -> "Settings":
        """Build settings from ``MAILHUB_<FIELD>`` environment variables.

        Args:
            dotenv: Load a ``.env`` file into the environment first.
            **overrides: Explicit values that win over the environment.

        Returns:
            Validated settings.
        """
        if dotenv:
            load_dotenv()

        values: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update(overrides)
        return cls.model_validate(values)
