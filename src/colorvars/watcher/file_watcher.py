"""File watcher invalidating resolution caches when stylesheets change on disk."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import anyio
from pathspec import PathSpec
from pathspec.patterns.gitwildmatch import GitWildMatchPattern
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from colorvars.config.config_schema import VENDOR_EXCLUDE_PATTERNS

if TYPE_CHECKING:
	from collections.abc import Callable, Coroutine, Iterable

logger = logging.getLogger(__name__)

STYLESHEET_SUFFIXES = frozenset({".css", ".scss", ".sass"})


class ChangeKind(str, Enum):
	"""What happened to a watched file."""

	CREATED = "created"
	MODIFIED = "modified"
	DELETED = "deleted"


class FileChangeHandler(FileSystemEventHandler):
	"""
	Turns watchdog events into debounced per-file callbacks.

	Watchdog calls the ``on_any_event`` hook from its observer thread, so every
	event is handed over to the event loop before any task is created. Changes
	to the same file within ``debounce_delay`` seconds collapse into a single
	callback; deletions are reported immediately.

	"""

	def __init__(
		self,
		root: Path,
		callback: Callable[[Path, ChangeKind], Coroutine[None, None, None]],
		loop: asyncio.AbstractEventLoop,
		debounce_delay: float = 0.3,
		ignored_patterns: Iterable[str] = VENDOR_EXCLUDE_PATTERNS,
		suffixes: Iterable[str] = STYLESHEET_SUFFIXES,
	) -> None:
		"""
		Initialize the handler.

		Args:
		    root: Directory that relative ignore patterns are matched against
		    callback: Async function called with the changed path and change kind
		    loop: Event loop that runs the callbacks
		    debounce_delay: Quiet period in seconds before a change is reported
		    ignored_patterns: Gitignore-style patterns of paths to ignore
		    suffixes: File suffixes worth reporting

		"""
		self.root = root
		self.callback = callback
		self.loop = loop
		self.debounce_delay = debounce_delay
		self.ignored = PathSpec.from_lines(GitWildMatchPattern, ignored_patterns)
		self.suffixes = frozenset(suffixes)
		self._debounce_tasks: dict[Path, asyncio.Task[None]] = {}

	def is_relevant(self, path: Path) -> bool:
		"""Return True for stylesheets outside the ignored directories."""
		if path.suffix.lower() not in self.suffixes:
			return False
		try:
			relative = path.relative_to(self.root).as_posix()
		except ValueError:
			return True
		return not self.ignored.match_file(relative)

	def on_any_event(self, event: FileSystemEvent) -> None:
		"""
		Forward file events to the event loop.

		Args:
		    event: The file system event

		"""
		if event.is_directory:
			return

		event_type = event.event_type
		if event_type == "moved":
			logger.debug("Detected file moved: %s -> %s", event.src_path, event.dest_path)
			self._dispatch(Path(str(event.src_path)), ChangeKind.DELETED)
			self._dispatch(Path(str(event.dest_path)), ChangeKind.CREATED)
			return

		kind = {"created": ChangeKind.CREATED, "modified": ChangeKind.MODIFIED, "deleted": ChangeKind.DELETED}.get(
			event_type
		)
		if kind is None:
			return
		logger.debug("Detected file %s: %s", event_type, event.src_path)
		self._dispatch(Path(str(event.src_path)), kind)

	def schedule(self, path: Path, kind: ChangeKind) -> None:
		"""Schedule the callback for a change; must run on the event loop."""
		pending = self._debounce_tasks.pop(path, None)
		if pending is not None and not pending.done():
			pending.cancel()
			logger.debug("Cancelled pending callback for %s", path)

		delay = 0.0 if kind is ChangeKind.DELETED else self.debounce_delay
		task = self.loop.create_task(self._debounced_callback(path, kind, delay))
		self._debounce_tasks[path] = task

	def cancel_pending(self) -> None:
		"""Cancel every callback still waiting for its quiet period."""
		for task in self._debounce_tasks.values():
			if not task.done():
				task.cancel()
		self._debounce_tasks.clear()

	def _dispatch(self, path: Path, kind: ChangeKind) -> None:
		if not self.is_relevant(path):
			return
		self.loop.call_soon_threadsafe(self.schedule, path, kind)

	async def _debounced_callback(self, path: Path, kind: ChangeKind, delay: float) -> None:
		try:
			if delay:
				await asyncio.sleep(delay)
			await self.callback(path, kind)
			logger.debug("Watcher callback for %s (%s) executed", path, kind.value)
		except asyncio.CancelledError:
			logger.debug("Callback for %s cancelled before execution", path)
		except Exception:
			logger.exception("Error executing watcher callback for %s", path)
		finally:
			if self._debounce_tasks.get(path) is asyncio.current_task():
				del self._debounce_tasks[path]


class FileWatcher:
	"""Monitors a workspace directory for stylesheet changes."""

	def __init__(
		self,
		path_to_watch: str | Path,
		on_change: Callable[[Path, ChangeKind], Coroutine[None, None, None]],
		debounce_delay: float = 0.3,
		ignored_patterns: Iterable[str] = VENDOR_EXCLUDE_PATTERNS,
	) -> None:
		"""
		Initialize the watcher.

		Args:
		    path_to_watch: The directory to monitor
		    on_change: Async function called for every debounced change
		    debounce_delay: Quiet period in seconds before a change is reported
		    ignored_patterns: Gitignore-style patterns of paths to ignore

		Raises:
		    ValueError: If the path is not a directory

		"""
		self.path_to_watch = Path(path_to_watch).resolve()
		if not self.path_to_watch.is_dir():
			msg = f"Path to watch must be a directory: {self.path_to_watch}"
			raise ValueError(msg)
		self.on_change = on_change
		self.debounce_delay = debounce_delay
		self.ignored_patterns = list(ignored_patterns)
		self.observer = Observer()
		self.event_handler: FileChangeHandler | None = None
		self._stop_event = anyio.Event()

	async def start(self) -> None:
		"""Start monitoring and wait until :meth:`stop` is called."""
		self.event_handler = FileChangeHandler(
			self.path_to_watch,
			self.on_change,
			asyncio.get_running_loop(),
			self.debounce_delay,
			self.ignored_patterns,
		)
		self.observer.schedule(self.event_handler, str(self.path_to_watch), recursive=True)
		self.observer.start()
		logger.info("Started watching directory: %s", self.path_to_watch)
		try:
			await self._stop_event.wait()
		finally:
			self.stop()

	def stop(self) -> None:
		"""Stop monitoring the directory."""
		if self.observer.is_alive():
			self.observer.stop()
			self.observer.join()
			logger.info("Watchdog observer stopped.")
		if self.event_handler is not None:
			self.event_handler.cancel_pending()
		self._stop_event.set()
