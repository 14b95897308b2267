"""
Injected capabilities for an admin session.

Each one is decided when the dashboard is constructed, never looked up per
call. Defaults: notifications go to the log, confirmations are asked on
the console, preferences live in a JSON file.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from kitchen_triage.models.priority import ScoredOrder

logger = logging.getLogger(__name__)

_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notifier(ABC):
    """Shows a short message to the admin (toast, banner, log line)."""

    @abstractmethod
    def notify(self, message: str, level: str = "info") -> None:
        ...


class LoggingNotifier(Notifier):
    def notify(self, message: str, level: str = "info") -> None:
        logger.log(_LEVELS.get(level, logging.INFO), "[%s] %s", level, message)


class Confirmer(ABC):
    """Asks the admin to confirm an action before it is applied."""

    @abstractmethod
    async def confirm(self, message: str) -> bool:
        ...


class ConsoleConfirmer(Confirmer):
    """Prompts on stdin without blocking the event loop."""

    async def confirm(self, message: str) -> bool:
        answer = await asyncio.to_thread(input, f"{message} [y/N] ")
        return answer.strip().lower() in ("y", "yes")


class AutoConfirmer(Confirmer):
    """Answers every prompt the same way. For headless sessions and tests."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.prompts = []

    async def confirm(self, message: str) -> bool:
        self.prompts.append(message)
        return self.answer


class Renderer(ABC):
    """Draws the visible, already filtered and sorted queue."""

    @abstractmethod
    def render(self, orders: Sequence[ScoredOrder]) -> None:
        ...


class PreferenceStore(ABC):
    """Admin preferences that survive a reload (filter, admin key)."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._values = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class JsonPreferenceStore(PreferenceStore):
    """Preferences kept in a small JSON object on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._values = self._load()

    def _load(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable preferences %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._values, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to save preferences to %s: %s", self.path, exc)
