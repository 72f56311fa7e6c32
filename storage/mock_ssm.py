from __future__ import annotations

import base64
import binascii
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Protocol

from settings import get_settings

SECURE_STRING = "SecureString"
PLAIN_STRING = "String"


class ParameterStore(Protocol):
    def get_parameter(self, name: str, with_decryption: bool = False) -> str: ...


class MockParameterStore:
    """SSM-like parameter store.

    SecureString values are kept encoded at rest and are only returned in clear
    text when the caller asks for decryption.
    """

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self.persistence_path = persistence_path
        self._parameters: Dict[str, Dict[str, str]] = {}
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_parameter(self, name: str, value: str, secure: bool = True) -> None:
        if secure:
            entry = {"type": SECURE_STRING, "value": _encrypt(value)}
        else:
            entry = {"type": PLAIN_STRING, "value": value}
        with self._lock:
            self._parameters[name] = entry
            self._persist()

    def get_parameter(self, name: str, with_decryption: bool = False) -> str:
        with self._lock:
            entry = self._parameters.get(name)
        if entry is None:
            raise KeyError(f"Parameter {name!r} not found.")
        if entry["type"] == SECURE_STRING and with_decryption:
            return _decrypt(entry["value"])
        return entry["value"]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._parameters, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for name, entry in data.items():
            if isinstance(entry, dict) and {"type", "value"} <= entry.keys():
                self._parameters[name] = {"type": entry["type"], "value": entry["value"]}


def _encrypt(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def _decrypt(value: str) -> str:
    try:
        return base64.b64decode(value.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise ValueError("Stored SecureString value could not be decrypted.") from exc


@lru_cache
def build_default_parameter_store(path: Optional[str] = None) -> MockParameterStore:
    settings = get_settings()
    persistence = settings.ssm_persistence_path if path is None else path
    return MockParameterStore(persistence_path=Path(persistence) if persistence else None)
