from __future__ import annotations

import json
import logging

from pydantic import ValidationError as PydanticValidationError

from hbscan.errors import ValidationError
from hbscan.schemas import DisplaySettings
from hbscan.storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_KEY = "hbscan_global_settings"


class DisplaySettingsStore:
    def __init__(
        self,
        store: KeyValueStore,
        key: str = DEFAULT_SETTINGS_KEY,
        defaults: DisplaySettings | None = None,
    ) -> None:
        self._store = store
        self._key = key
        self._defaults = defaults or DisplaySettings()
        self._settings = self._defaults

    @property
    def settings(self) -> DisplaySettings:
        return self._settings

    async def load(self) -> DisplaySettings:
        raw = await self._store.get(self._key)
        self._settings = self._decode(raw)
        return self._settings

    async def save(self) -> None:
        await self._store.set(self._key, self._settings.model_dump_json())

    async def update(self, **changes: object) -> DisplaySettings:
        merged = {**self._settings.model_dump(), **changes}
        try:
            self._settings = DisplaySettings.model_validate(merged)
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc
        await self.save()
        return self._settings

    async def reset(self) -> DisplaySettings:
        self._settings = self._defaults
        await self.save()
        return self._settings

    def _decode(self, raw: str | None) -> DisplaySettings:
        if not raw:
            return self._defaults
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("display_settings_corrupt", extra={"component": "navigator", "key": self._key})
            return self._defaults
        if not isinstance(payload, dict):
            return self._defaults
        # Stored blobs may also carry keys owned by other settings panels.
        known = {name: payload[name] for name in DisplaySettings.model_fields if payload.get(name)}
        try:
            stored = DisplaySettings.model_validate(known)
            return self._defaults.model_copy(update=stored.model_dump(exclude_unset=True))
        except PydanticValidationError:
            logger.warning("display_settings_invalid", extra={"component": "navigator", "key": self._key})
            return self._defaults
