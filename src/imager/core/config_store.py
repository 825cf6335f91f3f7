"""Durable key-value persistence for site config, models and the admin flag.

The store holds three independent values, each under its own key:

=========================  ==========================================
Key                        Value
=========================  ==========================================
``ai_imager_config``       :class:`SiteConfig` as a JSON object
``ai_imager_models``       list of :class:`ModelConfig` JSON objects
``ai_imager_is_admin``     ``true`` while an admin session is open
=========================  ==========================================

Reads are forgiving and forward compatible:

- a missing or invalid site config yields the defaults, and any
  field missing from a stored config is filled from the defaults
- a model list that was never written yields the single bootstrap entry
- a stored value that cannot be parsed is moved aside to ``<key>.corrupt``
  before the fallback applies, so a later write never destroys it
- stored model records without ``is_enabled`` come back enabled

The store has no business rules.  :class:`~imager.core.registry.ModelRegistry`
is the only writer of the model list.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .config import ImagerConfig
from .models import DEFAULT_SITE_CONFIG, ModelConfig, SiteConfig, bootstrap_model

logger = logging.getLogger(__name__)

SITE_CONFIG_KEY = "ai_imager_config"
MODELS_KEY = "ai_imager_models"
ADMIN_FLAG_KEY = "ai_imager_is_admin"

_MISSING = object()


class ConfigStore(ABC):
    """Typed access to the persisted configuration values.

    Subclasses only implement raw JSON-value access by key; the typed
    read/write methods, default merging and record migration live here.

    Args:
        config: Configuration used to build the bootstrap model entry.
            Defaults to the global configuration.
    """

    def __init__(self, config: ImagerConfig | None = None) -> None:
        if config is None:
            from .config import config as global_config

            config = global_config
        self._config = config

    # -- Raw access ---------------------------------------------------------

    @abstractmethod
    def _load(self, key: str) -> Any:
        """Return the decoded value stored under *key*, or ``_MISSING``."""

    @abstractmethod
    def _save(self, key: str, value: Any) -> None:
        """Store a JSON-serialisable *value* under *key*."""

    @abstractmethod
    def _remove(self, key: str) -> None:
        """Delete *key* if present."""

    @abstractmethod
    def _quarantine(self, key: str) -> None:
        """Move the value under *key* aside as ``<key>.corrupt``."""

    # -- Site config --------------------------------------------------------

    def read_site_config(self) -> SiteConfig:
        """Read the site config, filling missing fields from the defaults."""
        stored = self._load(SITE_CONFIG_KEY)
        if stored is _MISSING:
            return DEFAULT_SITE_CONFIG.model_copy()
        if not isinstance(stored, dict):
            logger.warning("Ignoring site config of type %s", type(stored).__name__)
            return DEFAULT_SITE_CONFIG.model_copy()

        merged = {**DEFAULT_SITE_CONFIG.model_dump(), **stored}
        try:
            return SiteConfig.model_validate(merged)
        except PydanticValidationError as e:
            logger.warning("Stored site config is invalid, using defaults: %s", e)
            return DEFAULT_SITE_CONFIG.model_copy()

    def write_site_config(self, site_config: SiteConfig) -> None:
        self._save(SITE_CONFIG_KEY, site_config.model_dump(mode="json"))

    # -- Models -------------------------------------------------------------

    def read_models(self) -> list[ModelConfig]:
        """Read the model collection in stored order.

        Returns:
            The stored models, or ``[bootstrap entry]`` if nothing was ever
            stored.  Records missing ``is_enabled`` are returned enabled.
        """
        stored = self._load(MODELS_KEY)
        if stored is _MISSING:
            return [bootstrap_model(self._config)]
        if not isinstance(stored, list):
            logger.warning("Ignoring model list of type %s", type(stored).__name__)
            self._quarantine(MODELS_KEY)
            return [bootstrap_model(self._config)]

        models: list[ModelConfig] = []
        for record in stored:
            try:
                models.append(ModelConfig.model_validate(record))
            except PydanticValidationError as e:
                # A single corrupt record should not hide the rest.
                logger.warning("Skipping unreadable model record: %s", e)
        return models

    def write_models(self, models: list[ModelConfig]) -> None:
        self._save(MODELS_KEY, [m.model_dump(mode="json") for m in models])

    # -- Admin flag ---------------------------------------------------------

    def read_admin_flag(self) -> bool:
        return self._load(ADMIN_FLAG_KEY) is True

    def write_admin_flag(self, is_admin: bool) -> None:
        if is_admin:
            self._save(ADMIN_FLAG_KEY, True)
        else:
            self._remove(ADMIN_FLAG_KEY)


class JsonConfigStore(ConfigStore):
    """File-backed store: one ``<key>.json`` file per key in *data_dir*.

    Args:
        data_dir: Directory holding the JSON files.  Created if missing.
        config: Configuration used to build the bootstrap model entry.
    """

    def __init__(self, data_dir: Path, config: ImagerConfig | None = None) -> None:
        super().__init__(config)
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Using JSON config store at %s", self.data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def _load(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return _MISSING
        try:
            with open(path, encoding="utf-8") as handle:
                return json.load(handle)
        except ValueError as e:
            logger.warning("Could not parse %s, moving it aside: %s", path, e)
            self._quarantine(key)
            return _MISSING

    def _save(self, key: str, value: Any) -> None:
        # Write to a sibling file and rename so a reader never sees half a file.
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(value, handle, indent=2, ensure_ascii=False)
        tmp_path.replace(path)

    def _remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def _quarantine(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.replace(path.with_name(f"{path.name}.corrupt"))


class MemoryConfigStore(ConfigStore):
    """Dict-backed store with the same contract as :class:`JsonConfigStore`.

    Values are round-tripped through JSON so that reads behave exactly like
    the file-backed store.
    """

    def __init__(self, config: ImagerConfig | None = None) -> None:
        super().__init__(config)
        self._data: dict[str, str] = {}

    def _load(self, key: str) -> Any:
        if key not in self._data:
            return _MISSING
        return json.loads(self._data[key])

    def _save(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def _remove(self, key: str) -> None:
        self._data.pop(key, None)

    def _quarantine(self, key: str) -> None:
        if key in self._data:
            self._data[f"{key}.corrupt"] = self._data.pop(key)
