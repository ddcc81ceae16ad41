from typing import Any, Dict, List
import json
import os
from pydantic import BaseModel, ConfigDict, Field, field_validator
from loguru import logger
from .events import Signal

# --- Generic Settings Models ---
class GeneralSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    debug_mode: bool = True
    log_dir: str = "logs"

class SyncSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    enabled: bool = True
    optimistic_update: bool = True
    summary_interval: int = Field(default=100, gt=0)  # Heartbeat every N events
    # Merged over the built-in entity -> query key table
    entity_query_keys: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("entity_query_keys")
    @classmethod
    def _keys_not_empty(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        for entity, keys in value.items():
            if not entity:
                raise ValueError("entity name must not be empty")
            if not keys or any(not k for k in keys):
                raise ValueError(f"query keys for '{entity}' must be a non-empty list of non-empty strings")
        return value

class AppConfig(BaseModel):
    general: GeneralSettings = Field(default_factory=GeneralSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)

# --- Manager ---
class ConfigManager:
    """
    Manages application configuration with persistence and reactivity.
    """
    def __init__(self, filepath: str = "config.json"):
        self.filepath = filepath
        self._data = AppConfig()
        self.on_changed = Signal("ConfigChanged")
        self._load()

    @property
    def data(self) -> AppConfig:
        return self._data

    def update(self, section: str, key: str, value: Any):
        """Update a setting, validate via Pydantic, autosave, and emit change event."""
        if not hasattr(self._data, section):
            raise ValueError(f"Invalid section: {section}")

        section_obj = getattr(self._data, section)
        if not hasattr(section_obj, key):
            raise ValueError(f"Invalid key: {key} in section {section}")

        setattr(section_obj, key, value)
        self._save()
        self.on_changed.emit(section, key, getattr(section_obj, key))

    def get(self, section: str, key: str) -> Any:
        section_obj = getattr(self._data, section)
        return getattr(section_obj, key)

    def _load(self):
        """Load settings from JSON or TOML file if present; otherwise keep defaults."""
        if os.path.isfile(self.filepath):
            try:
                if self.filepath.endswith('.toml'):
                    import tomllib
                    with open(self.filepath, "rb") as f:
                        raw = tomllib.load(f)
                else:
                    with open(self.filepath, "r", encoding="utf-8") as f:
                        raw = json.load(f)
                self._data = AppConfig.model_validate(raw)
            except Exception as e:
                # Keep defaults in memory but leave the user's file for them to fix
                logger.error(f"Failed to load config from {self.filepath}, using defaults: {e}")
        else:
            self._save()

    def _save(self):
        """Persist current config to JSON file."""
        if self.filepath.endswith('.toml'):
            # tomllib is read-only; TOML files are edited by hand
            return
        try:
            dirname = os.path.dirname(self.filepath)
            if dirname:
                os.makedirs(dirname, exist_ok=True)
            with open(self.filepath, "w", encoding="utf-8") as f:
                json.dump(self._data.model_dump(), f, indent=4)
        except Exception as e:
            logger.error(f"Failed to save config to {self.filepath}: {e}")
