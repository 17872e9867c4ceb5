"""Message catalogue with local overrides and {{placeholder}} substitution"""

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES_FILE = Path(__file__).parent.parent / "data" / "messages.json"


def _merge(base: dict, overrides: Mapping) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class MessageService:
    """
    Looks up user-facing messages by dot-notation key, e.g. "errors.unknown_form".

    Site-specific texts live in an optional overrides file that is merged over
    the bundled defaults.
    """

    def __init__(
        self,
        messages: dict[str, Any],
        contact_text: str = "",
    ):
        self.messages = messages
        self.contact_text = contact_text

    @classmethod
    def from_files(
        cls,
        overrides_file: Optional[Union[str, Path]] = None,
        contact_text: str = "",
        defaults_file: Path = DEFAULT_MESSAGES_FILE,
    ) -> "MessageService":
        messages = json.loads(Path(defaults_file).read_text(encoding="utf-8"))
        if overrides_file:
            path = Path(overrides_file)
            if path.exists():
                try:
                    messages = _merge(messages, json.loads(path.read_text(encoding="utf-8")))
                except json.JSONDecodeError:
                    logger.error(f"Ignoring malformed messages override file: {path}")
            else:
                logger.warning(f"Messages override file not found: {path}")
        return cls(messages, contact_text)

    def get(self, key: str, default: str = "") -> str:
        value: Any = self.messages
        for segment in key.split("."):
            if not isinstance(value, Mapping) or segment not in value:
                return default or f"[missing: {key}]"
            value = value[segment]
        return value if isinstance(value, str) else default

    def format(self, key: str, replacements: Mapping[str, Any] = None, default: str = "") -> str:
        message = self.get(key, default)
        for name, value in (replacements or {}).items():
            message = message.replace("{{" + name + "}}", str(value))
        return message

    def with_contact(self, key: str, default: str = "") -> str:
        """Format a message, filling {{contact}} with the configured contact text"""
        return self.format(key, {"contact": self.contact_text}, default).strip()

    def all(self) -> dict[str, Any]:
        return self.messages
