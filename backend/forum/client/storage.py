"""Persistent key/value storage for client session state."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from forum.obs import logging as obs_logging

logger = obs_logging.get_logger("forum.client.storage")


class SessionStorage:
	"""JSON-file backed store; with no path it only lives in memory.

	An unreadable file is discarded and the store starts empty.
	"""

	def __init__(self, path: Optional[Path | str] = None) -> None:
		self.path = Path(path) if path is not None else None
		self._data: Dict[str, Any] = self._load()

	def _load(self) -> Dict[str, Any]:
		if self.path is None or not self.path.exists():
			return {}
		try:
			data = json.loads(self.path.read_text(encoding="utf-8"))
		except (OSError, ValueError):
			logger.warning("session_storage_unreadable", extra={"path": str(self.path)})
			self.path.unlink(missing_ok=True)
			return {}
		return data if isinstance(data, dict) else {}

	def _flush(self) -> None:
		if self.path is None:
			return
		self.path.parent.mkdir(parents=True, exist_ok=True)
		self.path.write_text(json.dumps(self._data), encoding="utf-8")

	def get(self, key: str, default: Any = None) -> Any:
		return self._data.get(key, default)

	def set(self, key: str, value: Any) -> None:
		self._data[key] = value
		self._flush()

	def remove(self, *keys: str) -> None:
		for key in keys:
			self._data.pop(key, None)
		self._flush()

	def clear(self) -> None:
		self._data = {}
		self._flush()
