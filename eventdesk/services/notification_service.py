from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal, Optional

logger = logging.getLogger(__name__)

Variant = Literal["default", "destructive"]


@dataclass
class Notification:
    title: str
    description: str
    variant: Variant = "default"


@dataclass
class Notifier:
    """User-facing notification channel. Keeps what was shown and logs every entry."""

    sink: Optional[Callable[[Notification], None]] = None
    history: list[Notification] = field(default_factory=list)

    def notify(self, title: str, description: str, variant: Variant = "default") -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        if variant == "destructive":
            logger.warning("Notification title=%s description=%s", title, description)
        else:
            logger.info("Notification title=%s description=%s", title, description)
        self.history.append(notification)
        if self.sink is not None:
            self.sink(notification)
        return notification

    def error(self, description: str) -> Notification:
        return self.notify("Error", description, variant="destructive")

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None
