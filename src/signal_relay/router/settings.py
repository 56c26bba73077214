"""SettingsStore — the small durable operator settings record."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import structlog
from pydantic import Field, ValidationError, computed_field, model_validator

from signal_relay.models import WireModel

log = structlog.get_logger("settings")


class Settings(WireModel):
    """Global operator settings. One instance per process."""

    auto_trade_enabled: bool = False
    selected_channel_ids: list[str] = Field(default_factory=list)
    default_order_size: float = Field(default=0.01, gt=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def selected_channel_id(self) -> str | None:
        return self.selected_channel_ids[0] if self.selected_channel_ids else None

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy_keys(cls, data: Any) -> Any:
        # lotSize / savedChannelIds / a lone selectedChannelId from older files
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "lotSize" in data and "defaultOrderSize" not in data:
            data["defaultOrderSize"] = data.pop("lotSize")
        if "savedChannelIds" in data and "selectedChannelIds" not in data:
            data["selectedChannelIds"] = data.pop("savedChannelIds")
        single = data.pop("selectedChannelId", None) or data.pop("savedChannelId", None)
        if single and not data.get("selectedChannelIds"):
            data["selectedChannelIds"] = [single]
        return data


class SettingsStore:
    """Settings held in memory and mirrored to a JSON file on every change.

    A missing or unreadable file yields defaults; write failures are logged
    and the in-memory value stays authoritative.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._settings = self._load()

    @property
    def current(self) -> Settings:
        return self._settings

    def update(self, **changes: Any) -> Settings:
        """Apply and persist changes. Raises ValidationError on bad values."""
        merged = {**self._settings.model_dump(exclude={"selected_channel_id"}), **changes}
        self._settings = Settings.model_validate(merged)
        self.save()
        return self._settings

    def _load(self) -> Settings:
        if self.path is None or not self.path.exists():
            return Settings()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            settings = Settings.model_validate(data)
        except (OSError, ValueError, ValidationError):
            log.exception("settings_load_failed", path=str(self.path))
            return Settings()
        log.info(
            "settings_loaded",
            auto_trade_enabled=settings.auto_trade_enabled,
            selected_channel_ids=settings.selected_channel_ids,
            default_order_size=settings.default_order_size,
        )
        return settings

    def save(self) -> None:
        if self.path is None:
            return
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp.write_text(
                json.dumps(self._settings.to_wire(), indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, self.path)
        except OSError:
            log.exception("settings_save_failed", path=str(self.path))
