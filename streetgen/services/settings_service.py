"""Persisted user settings.

Settings live in a flat string key-value store. Scalar values are stored as
strings (enums by member name) and list-valued settings as JSON arrays, so any
key-value backend can hold them. `YamlFileStore` is the file backend used by
the CLI and API.
"""

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol, TypeVar, Union

import yaml
from pydantic import ValidationError

from ..models.settings import AspectRatio, CustomStyle, FantasyMap, GenerationStyle, ImageSize, MapMode
from .storage_service import FantasyMapStorage

logger = logging.getLogger(__name__)

KEY_API_KEY = "gemini_api_key"
KEY_STYLE = "generation_style"
KEY_SELECTED_CUSTOM_STYLE = "selected_custom_style_id"
KEY_ASPECT_RATIO = "aspect_ratio"
KEY_IMAGE_SIZE = "image_size"
KEY_MAP_MODE = "map_mode"
KEY_CUSTOM_STYLES = "custom_styles"
KEY_FANTASY_MAPS = "fantasy_maps"
KEY_ACTIVE_FANTASY_MAP = "active_fantasy_map_id"

E = TypeVar("E", bound=Enum)


class KeyValueStore(Protocol):
    """String key-value storage."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class YamlFileStore:
    """Key-value store persisted as a flat YAML mapping.

    The file is rewritten atomically on every change and restricted to the
    owner, since it holds the API key.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed settings file %s", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        # A leftover temp file keeps its old mode, so narrow it before writing
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w") as f:
            yaml.safe_dump(self._data, f, default_flow_style=False, sort_keys=True)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()


class SettingsRepository:
    """Typed access to settings stored in a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    # -- helpers ------------------------------------------------------------

    def _get_enum(self, key: str, enum_cls: type[E], default: E) -> E:
        name = self.store.get(key)
        if name is None:
            return default
        try:
            return enum_cls[name]
        except KeyError:
            logger.warning("Unknown %s '%s' in settings, using %s", enum_cls.__name__, name, default.name)
            return default

    def _get_json_list(self, key: str) -> list[dict]:
        raw = self.store.get(key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Corrupt %s in settings, treating as empty", key)
            return []
        return items if isinstance(items, list) else []

    def _set_optional(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self.store.remove(key)
        else:
            self.store.set(key, value)

    # -- scalar settings ------------------------------------------------------

    def get_api_key(self) -> Optional[str]:
        return self.store.get(KEY_API_KEY)

    def save_api_key(self, api_key: str) -> None:
        self.store.set(KEY_API_KEY, api_key)

    def has_api_key(self) -> bool:
        key = self.get_api_key()
        return key is not None and key.strip() != ""

    def get_style(self) -> GenerationStyle:
        return self._get_enum(KEY_STYLE, GenerationStyle, GenerationStyle.REALISTIC)

    def save_style(self, style: GenerationStyle) -> None:
        self.store.set(KEY_STYLE, style.name)

    def get_selected_custom_style_id(self) -> Optional[str]:
        return self.store.get(KEY_SELECTED_CUSTOM_STYLE)

    def save_selected_custom_style_id(self, style_id: Optional[str]) -> None:
        self._set_optional(KEY_SELECTED_CUSTOM_STYLE, style_id)

    def get_aspect_ratio(self) -> AspectRatio:
        return self._get_enum(KEY_ASPECT_RATIO, AspectRatio, AspectRatio.RATIO_16_9)

    def save_aspect_ratio(self, ratio: AspectRatio) -> None:
        self.store.set(KEY_ASPECT_RATIO, ratio.name)

    def get_image_size(self) -> ImageSize:
        return self._get_enum(KEY_IMAGE_SIZE, ImageSize, ImageSize.SIZE_2K)

    def save_image_size(self, size: ImageSize) -> None:
        self.store.set(KEY_IMAGE_SIZE, size.name)

    def get_map_mode(self) -> MapMode:
        return self._get_enum(KEY_MAP_MODE, MapMode, MapMode.REAL_WORLD)

    def save_map_mode(self, mode: MapMode) -> None:
        self.store.set(KEY_MAP_MODE, mode.name)

    # -- custom styles --------------------------------------------------------

    def get_custom_styles(self) -> list[CustomStyle]:
        styles = []
        for item in self._get_json_list(KEY_CUSTOM_STYLES):
            try:
                styles.append(CustomStyle(**item))
            except (TypeError, ValidationError):
                logger.warning("Skipping invalid custom style entry %r", item)
        return styles

    def get_custom_style_by_id(self, style_id: str) -> Optional[CustomStyle]:
        return next((s for s in self.get_custom_styles() if s.id == style_id), None)

    def save_custom_style(self, style: CustomStyle) -> None:
        """Insert or replace a custom style by id."""
        styles = self.get_custom_styles()
        index = next((i for i, s in enumerate(styles) if s.id == style.id), None)
        if index is None:
            styles.append(style)
        else:
            styles[index] = style
        self._save_custom_styles(styles)

    def delete_custom_style(self, style_id: str) -> None:
        """Remove a custom style; if it was selected, fall back to REALISTIC."""
        self._save_custom_styles([s for s in self.get_custom_styles() if s.id != style_id])
        if self.get_selected_custom_style_id() == style_id:
            self.save_selected_custom_style_id(None)
            if self.get_style() == GenerationStyle.CUSTOM:
                self.save_style(GenerationStyle.REALISTIC)

    def _save_custom_styles(self, styles: list[CustomStyle]) -> None:
        self.store.set(KEY_CUSTOM_STYLES, json.dumps([s.model_dump() for s in styles]))

    def get_selected_custom_style_text(self) -> Optional[str]:
        """Prompt text of the selected custom style, if the style is CUSTOM."""
        if self.get_style() != GenerationStyle.CUSTOM:
            return None
        style_id = self.get_selected_custom_style_id()
        if style_id is None:
            return None
        style = self.get_custom_style_by_id(style_id)
        return style.prompt if style else None

    # -- fantasy maps ---------------------------------------------------------

    def get_fantasy_maps(self) -> list[FantasyMap]:
        maps = []
        for item in self._get_json_list(KEY_FANTASY_MAPS):
            try:
                maps.append(FantasyMap(**item))
            except (TypeError, ValidationError):
                logger.warning("Skipping invalid fantasy map entry %r", item)
        return maps

    def get_fantasy_map_by_id(self, map_id: str) -> Optional[FantasyMap]:
        return next((m for m in self.get_fantasy_maps() if m.id == map_id), None)

    def save_fantasy_map(self, fantasy_map: FantasyMap) -> None:
        """Insert or replace a fantasy map by id."""
        existing = self.get_fantasy_maps()
        index = next((i for i, m in enumerate(existing) if m.id == fantasy_map.id), None)
        if index is None:
            existing.append(fantasy_map)
        else:
            existing[index] = fantasy_map
        self._save_fantasy_maps(existing)

    def delete_fantasy_map(self, map_id: str) -> None:
        """Remove a fantasy map; clears the active pointer if it pointed at it."""
        self._save_fantasy_maps([m for m in self.get_fantasy_maps() if m.id != map_id])
        if self.get_active_fantasy_map_id() == map_id:
            self.save_active_fantasy_map_id(None)

    def _save_fantasy_maps(self, maps: list[FantasyMap]) -> None:
        self.store.set(KEY_FANTASY_MAPS, json.dumps([m.model_dump() for m in maps]))

    def get_active_fantasy_map_id(self) -> Optional[str]:
        return self.store.get(KEY_ACTIVE_FANTASY_MAP)

    def save_active_fantasy_map_id(self, map_id: Optional[str]) -> None:
        self._set_optional(KEY_ACTIVE_FANTASY_MAP, map_id)

    def get_active_fantasy_map(self) -> Optional[FantasyMap]:
        map_id = self.get_active_fantasy_map_id()
        if map_id is None:
            return None
        return self.get_fantasy_map_by_id(map_id)


@dataclass(frozen=True)
class SaveStatus:
    """Outcome of saving the settings form."""

    success: bool
    message: Optional[str] = None


class SettingsService:
    """Validating operations behind the settings screen."""

    def __init__(self, repository: SettingsRepository, fantasy_storage: FantasyMapStorage):
        self.repository = repository
        self.fantasy_storage = fantasy_storage

    def save_settings(
        self,
        api_key: str,
        style: GenerationStyle,
        custom_style_id: Optional[str],
        aspect_ratio: AspectRatio,
        image_size: ImageSize,
    ) -> SaveStatus:
        if not api_key or not api_key.strip():
            return SaveStatus(success=False, message="Please enter an API key")

        repo = self.repository
        repo.save_api_key(api_key.strip())
        repo.save_style(style)
        repo.save_selected_custom_style_id(custom_style_id)
        repo.save_aspect_ratio(aspect_ratio)
        repo.save_image_size(image_size)
        logger.info("Settings saved (style=%s, %s, %s)", style.name, aspect_ratio.value, image_size.value)
        return SaveStatus(success=True)

    def save_custom_style(self, name: str, prompt: str, existing_id: Optional[str] = None) -> Optional[CustomStyle]:
        """
        Create or update a custom style.

        Returns:
            The saved style, or None if name or prompt is blank
        """
        if not name.strip() or not prompt.strip():
            return None

        if existing_id:
            style = CustomStyle(id=existing_id, name=name.strip(), prompt=prompt.strip())
        else:
            style = CustomStyle(name=name.strip(), prompt=prompt.strip())
        self.repository.save_custom_style(style)
        return style

    def delete_custom_style(self, style_id: str) -> None:
        self.repository.delete_custom_style(style_id)

    def save_fantasy_map(
        self,
        name: str,
        world_context: str = "",
        image_source: Union[str, Path, bytes, None] = None,
        existing_id: Optional[str] = None,
    ) -> Optional[FantasyMap]:
        """
        Create or update a fantasy map.

        Args:
            name: Map name (required)
            world_context: Lore for the world
            image_source: New image (path or bytes); required when creating
            existing_id: Id of the map being edited

        Returns:
            The saved map, or None if validation or image import failed
        """
        if not name.strip():
            return None

        existing = self.repository.get_fantasy_map_by_id(existing_id) if existing_id else None

        if image_source is not None:
            image_path = self.fantasy_storage.save_map_image(image_source)
        else:
            image_path = existing.image_path if existing else None

        if image_path is None:
            return None

        if existing is not None and image_source is not None and existing.image_path != image_path:
            self.fantasy_storage.delete_map_image(existing.image_path)

        fields = {
            "name": name.strip(),
            "image_path": image_path,
            "world_context": world_context.strip(),
        }
        if existing is not None:
            fantasy_map = FantasyMap(id=existing.id, created_at=existing.created_at, **fields)
        else:
            fantasy_map = FantasyMap(**fields)

        self.repository.save_fantasy_map(fantasy_map)
        return fantasy_map

    def delete_fantasy_map(self, map_id: str) -> None:
        fantasy_map = self.repository.get_fantasy_map_by_id(map_id)
        if fantasy_map is not None:
            self.fantasy_storage.delete_map_image(fantasy_map.image_path)
        self.repository.delete_fantasy_map(map_id)
