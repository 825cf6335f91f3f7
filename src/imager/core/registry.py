"""Model registry: the authoritative, invariant-keeping model collection.

:class:`ModelRegistry` owns the in-memory list of :class:`ModelConfig`
entries and is the only component that writes it to the
:class:`~imager.core.config_store.ConfigStore`.

Invariants
----------
After every mutating call on a non-empty collection:

- exactly one entry has ``is_default``
- the default entry has ``is_enabled``
- ids are unique and insertion order is preserved

Every mutation follows the same pattern: check preconditions, build the new
list, write the whole list to the store, then swap it in.  If the store write
raises, the in-memory collection is left untouched.

Deleting the default entry promotes the first remaining enabled entry (or,
if none is enabled, the first remaining entry, which is then enabled).

Usage
-----
::

    from imager.core.config_store import JsonConfigStore
    from imager.core.registry import ModelRegistry

    registry = ModelRegistry(JsonConfigStore(config.data_dir))
    model = registry.add("gemini-2.5-flash-image", "AIza...")
    registry.set_default(model.id)
    active = registry.active_model()
"""

from __future__ import annotations

import logging
import uuid

from .config_store import ConfigStore
from .errors import NotFoundError, PolicyError, ValidationError
from .models import ModelConfig

logger = logging.getLogger(__name__)


def _require_fields(name: str, api_key: str) -> None:
    if not name or not name.strip():
        raise ValidationError("Model name is required")
    if not api_key or not api_key.strip():
        raise ValidationError("API key is required")


class ModelRegistry:
    """Keeps the model collection consistent and resolves the active model.

    Args:
        store: Persistence collaborator.  The collection is read from it once
            on construction (and again on :meth:`reload`).
    """

    def __init__(self, store: ConfigStore) -> None:
        self._store = store
        self._models: list[ModelConfig] = store.read_models()

    # -- Queries ------------------------------------------------------------

    def list(self) -> list[ModelConfig]:
        """Return the collection in insertion order."""
        return list(self._models)

    def get(self, model_id: str) -> ModelConfig:
        """Return the entry with *model_id*.

        Raises:
            NotFoundError: If no entry has that id.
        """
        return self._models[self._index(model_id)]

    def search(self, query: str) -> list[ModelConfig]:
        """Filter by case-insensitive name substring or id substring."""
        if not query:
            return self.list()
        needle = query.lower()
        return [m for m in self._models if needle in m.name.lower() or query in m.id]

    def active_model(self) -> ModelConfig:
        """Resolve the model to generate with.

        Resolution order: the default entry, else the first enabled entry,
        else the first entry.

        Raises:
            NotFoundError: If the collection is empty.
        """
        if not self._models:
            raise NotFoundError("No models are configured")
        for model in self._models:
            if model.is_default:
                return model
        for model in self._models:
            if model.is_enabled:
                return model
        return self._models[0]

    # -- Mutations ----------------------------------------------------------

    def add(self, name: str, api_key: str) -> ModelConfig:
        """Append a new model.

        The first model added to an empty collection becomes the default.

        Raises:
            ValidationError: If *name* or *api_key* is empty.
        """
        _require_fields(name, api_key)
        is_first = not self._models
        model = ModelConfig(
            id=uuid.uuid4().hex,
            name=name.strip(),
            api_key=api_key.strip(),
            is_default=is_first,
            is_enabled=True,
        )
        self._commit([*self._models, model])
        logger.info("Added model %s (%s)%s", model.id, model.name, " as default" if is_first else "")
        return model

    def update(self, model_id: str, name: str, api_key: str) -> ModelConfig:
        """Replace the name and credential of an entry in place.

        Raises:
            NotFoundError: If *model_id* is unknown.
            ValidationError: If *name* or *api_key* is empty.
        """
        index = self._index(model_id)
        _require_fields(name, api_key)
        updated = self._models[index].model_copy(
            update={"name": name.strip(), "api_key": api_key.strip()}
        )
        models = list(self._models)
        models[index] = updated
        self._commit(models)
        logger.info("Updated model %s (%s)", model_id, updated.name)
        return updated

    def delete(self, model_id: str) -> None:
        """Remove an entry, promoting a new default if the default was removed.

        Raises:
            NotFoundError: If *model_id* is unknown.
        """
        index = self._index(model_id)
        removed = self._models[index]
        models = self._models[:index] + self._models[index + 1 :]

        if removed.is_default and models:
            successor = next((i for i, m in enumerate(models) if m.is_enabled), 0)
            models[successor] = models[successor].model_copy(
                update={"is_default": True, "is_enabled": True}
            )
            logger.info("Promoted model %s to default", models[successor].id)

        self._commit(models)
        logger.info("Deleted model %s (%s)", model_id, removed.name)

    def set_default(self, model_id: str) -> ModelConfig:
        """Make *model_id* the only default entry and force it enabled.

        Raises:
            NotFoundError: If *model_id* is unknown.
        """
        self._index(model_id)
        models = [
            m.model_copy(update={"is_default": True, "is_enabled": True})
            if m.id == model_id
            else m.model_copy(update={"is_default": False})
            for m in self._models
        ]
        self._commit(models)
        logger.info("Set default model to %s", model_id)
        return self.get(model_id)

    def set_enabled(self, model_id: str, enabled: bool) -> ModelConfig:
        """Enable or disable an entry.

        Raises:
            NotFoundError: If *model_id* is unknown.
            PolicyError: If asked to disable the default entry.  The
                collection is left unchanged.
        """
        index = self._index(model_id)
        target = self._models[index]
        if target.is_default and not enabled:
            raise PolicyError("Cannot disable the default model")

        models = list(self._models)
        models[index] = target.model_copy(update={"is_enabled": enabled})
        self._commit(models)
        logger.info("%s model %s", "Enabled" if enabled else "Disabled", model_id)
        return models[index]

    def reload(self) -> list[ModelConfig]:
        """Discard the in-memory collection and re-read it from the store."""
        self._models = self._store.read_models()
        return self.list()

    # -- Internals ----------------------------------------------------------

    def _index(self, model_id: str) -> int:
        for i, model in enumerate(self._models):
            if model.id == model_id:
                return i
        raise NotFoundError(f"Model not found: {model_id}")

    def _commit(self, models: list[ModelConfig]) -> None:
        self._store.write_models(models)
        self._models = models
