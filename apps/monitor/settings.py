from __future__ import annotations

from typing import Literal

from pydantic_settings import SettingsConfigDict

from apps.viewer.settings import ViewerSettings


class MonitorSettings(ViewerSettings):
    model_config = SettingsConfigDict(env_prefix="TXL_", extra="ignore")

    refresh_hz: float = 4.0
    sort_mode: Literal["reading", "text", "size"] = "reading"
