"""Persisted light/dark/system theme choice."""

from __future__ import annotations

from typing import Literal, Tuple, cast

from forum.client.storage import SessionStorage

ThemeMode = Literal["light", "dark", "system"]

MODES: Tuple[ThemeMode, ...] = ("light", "dark", "system")
STORAGE_KEY = "theme"


class ThemePreference:
	def __init__(self, storage: SessionStorage, *, default: ThemeMode = "system") -> None:
		self.storage = storage
		stored = storage.get(STORAGE_KEY)
		self._mode: ThemeMode = cast(ThemeMode, stored) if stored in MODES else default

	@property
	def mode(self) -> ThemeMode:
		return self._mode

	def set(self, mode: str) -> ThemeMode:
		if mode not in MODES:
			raise ValueError(f"Unknown theme mode: {mode}")
		self._mode = cast(ThemeMode, mode)
		self.storage.set(STORAGE_KEY, self._mode)
		return self._mode

	def cycle(self) -> ThemeMode:
		"""light -> dark -> system -> light."""
		return self.set(MODES[(MODES.index(self._mode) + 1) % len(MODES)])

	def resolve(self, *, system_prefers_dark: bool = False) -> Literal["light", "dark"]:
		if self._mode == "system":
			return "dark" if system_prefers_dark else "light"
		return self._mode
