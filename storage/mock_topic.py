from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Deque, Dict, Iterable, Mapping, Optional, Protocol
from uuid import uuid4

from models.records import MessageAttribute
from settings import DEFAULT_TOPIC_RETENTION, get_settings


class TopicPublisher(Protocol):
    """Anything that can hand a message to a pub/sub topic."""

    def publish(
        self,
        topic: str,
        message: str,
        attributes: Mapping[str, MessageAttribute],
    ) -> str: ...


@dataclass(frozen=True)
class PublishedMessage:
    topic: str
    message_id: str
    message: str
    attributes: Dict[str, MessageAttribute] = field(default_factory=dict)
    published_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def body(self) -> dict:
        return json.loads(self.message)


class MockTopicPublisher:
    """In-process stand-in for an SNS-style topic, safe to share across requests."""

    def __init__(
        self,
        persistence_path: Optional[Path] = None,
        known_topics: Optional[Iterable[str]] = None,
        retention: int = DEFAULT_TOPIC_RETENTION,
    ) -> None:
        self.persistence_path = persistence_path
        self.known_topics = frozenset(known_topics) if known_topics is not None else None
        # Only the newest ``retention`` messages per topic are kept.
        self.retention = retention
        self._messages: Dict[str, Deque[PublishedMessage]] = {}
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)

    def publish(
        self,
        topic: str,
        message: str,
        attributes: Mapping[str, MessageAttribute],
    ) -> str:
        if self.known_topics is not None and topic not in self.known_topics:
            raise KeyError(f"Topic {topic!r} does not exist.")

        published = PublishedMessage(
            topic=topic,
            message_id=str(uuid4()),
            message=message,
            attributes=dict(attributes),
        )
        with self._lock:
            self._messages.setdefault(topic, deque(maxlen=self.retention)).append(published)
            self._append_to_disk(published)
        return published.message_id

    def messages(self, topic: str) -> list[PublishedMessage]:
        with self._lock:
            return list(self._messages.get(topic, ()))

    def topics(self) -> list[str]:
        with self._lock:
            return sorted(self._messages)

    def _append_to_disk(self, published: PublishedMessage) -> None:
        if not self.persistence_path:
            return
        line = {
            "topic": published.topic,
            "message_id": published.message_id,
            "published_at": published.published_at.isoformat(),
            "message": published.message,
            "attributes": {
                name: attribute.to_dict() for name, attribute in published.attributes.items()
            },
        }
        with self.persistence_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(line, sort_keys=True) + "\n")


@lru_cache
def build_default_publisher(path: Optional[str] = None) -> MockTopicPublisher:
    settings = get_settings()
    persistence = settings.topic_persistence_path if path is None else path
    return MockTopicPublisher(
        persistence_path=Path(persistence) if persistence else None,
        retention=settings.topic_retention,
    )
