"""Filewatcher module for monitoring stylesheet changes."""

from colorvars.watcher.file_watcher import STYLESHEET_SUFFIXES, ChangeKind, FileChangeHandler, FileWatcher

__all__ = ["STYLESHEET_SUFFIXES", "ChangeKind", "FileChangeHandler", "FileWatcher"]
