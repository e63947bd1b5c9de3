"""JSON-file key-value option store shared by every request."""

import json
import os
from pathlib import Path
from typing import Any, Dict

from redirection.utils.logging import service_logger

PLUGIN_OPTIONS = "redirection_options"
DEFAULT_OPTIONS_FILE = "./data/options.json"

_MISSING = object()


class OptionStore:
    """Named option slots persisted in a single JSON document.

    Every call goes to disk: the store never caches values between calls so
    independent requests always see the latest write (last writer wins).

    Layout of ./data/options.json:
        {
            "redirection_options": {"database": "2.4", ...},
            "database_stage": {"stage": false, "stages": [], "mode": "upgrade"}
        }
    """

    def __init__(self, path: str = DEFAULT_OPTIONS_FILE):
        """Initialize option store.

        Args:
            path: Location of the JSON options document
        """
        self.logger = service_logger("option_store")
        self.path = Path(path)

    def get(self, name: str, default: Any = None) -> Any:
        """Read a single option slot.

        Args:
            name: Option slot name
            default: Returned when the slot does not exist

        Returns:
            Stored value or default

        Raises:
            OSError: If the options file cannot be read
            json.JSONDecodeError: If the options file is corrupted
        """
        value = self._load().get(name, _MISSING)
        if value is _MISSING:
            return default
        return value

    def set(self, name: str, value: Any) -> None:
        """Overwrite a single option slot."""
        options = self._load()
        options[name] = value
        self._save(options)
        self.logger.debug(f"Saved option: {name}")

    def delete(self, name: str) -> None:
        """Remove an option slot (no-op if absent)."""
        options = self._load()
        if name not in options:
            return
        del options[name]
        self._save(options)
        self.logger.debug(f"Deleted option: {name}")

    def get_plugin_options(self) -> Dict[str, Any]:
        """Plugin settings with defaults applied."""
        options = {"database": ""}
        stored = self.get(PLUGIN_OPTIONS, {})
        if isinstance(stored, dict):
            options.update(stored)
        return options

    def set_plugin_options(self, updates: Dict[str, Any]) -> None:
        """Merge updates into the plugin settings slot."""
        options = self.get_plugin_options()
        options.update(updates)
        self.set(PLUGIN_OPTIONS, options)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Corrupted options file {self.path}: {e}")
            raise

        if not isinstance(data, dict):
            raise ValueError(f"Options file {self.path} does not contain an object")
        return data

    def _save(self, options: Dict[str, Any]) -> None:
        """Write the document atomically (temp file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.parent / f".{self.path.name}.tmp.{os.getpid()}"

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(options, f, indent=2)
            temp_path.replace(self.path)
        except Exception as e:
            self.logger.error(f"Failed to save options file: {e}", exc_info=True)
            temp_path.unlink(missing_ok=True)
            raise
