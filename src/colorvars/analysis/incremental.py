"""
Region-based incremental analysis.

Each document goes through three states: uncached, partial (some regions
analyzed, a background pass scheduled) and complete (every line covered).
Visible regions and edited regions are parsed synchronously; everything else
is parsed by a cancellable background task in bounded chunks.

"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Literal

from colorvars.cache import CacheManager
from colorvars.config import AnalyzerConfigSchema
from colorvars.errors import ErrorHandler, ParserError
from colorvars.models import ParseResult, Position, Range
from colorvars.parsers import CSSParser, SCSSParser

if TYPE_CHECKING:
	from colorvars.cache import CacheStats
	from colorvars.documents import DocumentSource
	from colorvars.models import ColorMatch, VariableDefinition, VariableUsage

logger = logging.getLogger(__name__)

Priority = Literal["high", "medium", "low"]
_PRIORITY_RANK = {"low": 0, "medium": 1, "high": 2}


@dataclass(frozen=True)
class AnalysisRegion:
	"""An inclusive range of lines with an analysis priority."""

	start_line: int
	end_line: int
	priority: Priority = "low"

	@property
	def line_count(self) -> int:
		return self.end_line - self.start_line + 1

	def contains(self, line: int) -> bool:
		return self.start_line <= line <= self.end_line

	def overlaps(self, other: AnalysisRegion) -> bool:
		return self.start_line <= other.end_line and self.end_line >= other.start_line


@dataclass(frozen=True)
class TextChange:
	"""An edit: ``range`` of the previous text was replaced by ``text``."""

	range: Range
	text: str
	range_length: int = 0

	@property
	def line_delta(self) -> int:
		"""How many lines the edit added (negative when it removed lines)."""
		return self.text.count("\n") - (self.range.end.line - self.range.start.line)


@dataclass
class AnalysisResult:
	"""The merged extraction results of one document version."""

	color_matches: list[ColorMatch] = field(default_factory=list)
	variable_definitions: list[VariableDefinition] = field(default_factory=list)
	variable_usages: list[VariableUsage] = field(default_factory=list)
	analyzed_regions: list[AnalysisRegion] = field(default_factory=list)
	is_complete: bool = False
	version: int = 0

	def merge(self, parsed: ParseResult, regions: list[AnalysisRegion]) -> None:
		"""Add freshly parsed items and the regions they came from."""
		self.color_matches.extend(parsed.color_values)
		self.variable_definitions.extend(parsed.variable_definitions)
		self.variable_usages.extend(parsed.variable_usages)
		self.analyzed_regions = merge_regions([*self.analyzed_regions, *regions])
		self.sort()

	def discard_lines(self, regions: list[AnalysisRegion]) -> None:
		"""Drop items starting inside ``regions`` and remove those lines from the analyzed regions."""

		def outside(line: int) -> bool:
			return not any(region.contains(line) for region in regions)

		self.color_matches = [m for m in self.color_matches if outside(m.range.start.line)]
		self.variable_definitions = [d for d in self.variable_definitions if outside(d.range.start.line)]
		self.variable_usages = [u for u in self.variable_usages if outside(u.range.start.line)]
		remaining = self.analyzed_regions
		for region in regions:
			remaining = [piece for analyzed in remaining for piece in subtract_region(analyzed, region)]
		self.analyzed_regions = remaining
		self.is_complete = False

	def shift_lines_after(self, line: int, delta: int) -> None:
		"""Move every item and region that starts after ``line`` by ``delta`` lines."""
		if delta == 0:
			return
		self.color_matches = [
			replace(m, range=m.range.shift_lines(delta)) if m.range.start.line > line else m for m in self.color_matches
		]
		self.variable_definitions = [
			replace(d, range=d.range.shift_lines(delta)) if d.range.start.line > line else d
			for d in self.variable_definitions
		]
		self.variable_usages = [
			replace(u, range=u.range.shift_lines(delta)) if u.range.start.line > line else u for u in self.variable_usages
		]
		shifted = []
		for region in self.analyzed_regions:
			if region.start_line > line:
				shifted.append(replace(region, start_line=region.start_line + delta, end_line=region.end_line + delta))
			elif region.end_line > line:
				shifted.append(replace(region, end_line=max(line, region.end_line + delta)))
			else:
				shifted.append(region)
		self.analyzed_regions = merge_regions(shifted)

	def covered_lines(self, line_count: int) -> int:
		"""Count the distinct lines below ``line_count`` that have been analyzed."""
		return sum(
			max(0, min(region.end_line, line_count - 1) - region.start_line + 1) for region in self.analyzed_regions
		)

	def sort(self) -> None:
		self.color_matches.sort(key=lambda m: m.range.start)
		self.variable_definitions.sort(key=lambda d: d.range.start)
		self.variable_usages.sort(key=lambda u: u.range.start)


@dataclass(frozen=True)
class AnalyzerStats:
	cached_documents: int
	pending_analysis: int
	in_progress: int
	cache: CacheStats


def merge_regions(regions: list[AnalysisRegion]) -> list[AnalysisRegion]:
	"""
	Merge overlapping or adjacent regions.

	The merged region keeps the highest priority of its parts.

	Args:
	    regions: Regions in any order

	Returns:
	    list[AnalysisRegion]: Disjoint, non-adjacent regions sorted by start line

	"""
	if len(regions) <= 1:
		return list(regions)
	ordered = sorted(regions, key=lambda r: r.start_line)
	merged: list[AnalysisRegion] = []
	current = ordered[0]
	for region in ordered[1:]:
		if current.end_line >= region.start_line - 1:
			priority = max(current.priority, region.priority, key=_PRIORITY_RANK.__getitem__)
			current = AnalysisRegion(current.start_line, max(current.end_line, region.end_line), priority)
		else:
			merged.append(current)
			current = region
	merged.append(current)
	return merged


def subtract_region(region: AnalysisRegion, removed: AnalysisRegion) -> list[AnalysisRegion]:
	"""Return the parts of ``region`` outside ``removed``."""
	if not region.overlaps(removed):
		return [region]
	pieces = []
	if region.start_line < removed.start_line:
		pieces.append(replace(region, end_line=removed.start_line - 1))
	if region.end_line > removed.end_line:
		pieces.append(replace(region, start_line=removed.end_line + 1))
	return pieces


def remaining_regions(analyzed: list[AnalysisRegion], line_count: int) -> list[AnalysisRegion]:
	"""Return the low-priority gaps between ``analyzed`` regions, up to the last line."""
	remaining: list[AnalysisRegion] = []
	current = 0
	for region in sorted(analyzed, key=lambda r: r.start_line):
		if current < region.start_line:
			remaining.append(AnalysisRegion(current, min(region.start_line, line_count) - 1, "low"))
		current = max(current, region.end_line + 1)
	if current < line_count:
		remaining.append(AnalysisRegion(current, line_count - 1, "low"))
	return [region for region in remaining if region.end_line >= region.start_line]


def split_into_chunks(regions: list[AnalysisRegion], max_lines: int) -> list[list[AnalysisRegion]]:
	"""
	Group regions into chunks of at most ``max_lines`` lines.

	Regions longer than ``max_lines`` are cut into several pieces first.

	"""
	pieces: list[AnalysisRegion] = []
	for region in regions:
		start = region.start_line
		while start <= region.end_line:
			end = min(region.end_line, start + max_lines - 1)
			pieces.append(replace(region, start_line=start, end_line=end))
			start = end + 1

	chunks: list[list[AnalysisRegion]] = []
	current: list[AnalysisRegion] = []
	current_lines = 0
	for piece in pieces:
		if current and current_lines + piece.line_count > max_lines:
			chunks.append(current)
			current = []
			current_lines = 0
		current.append(piece)
		current_lines += piece.line_count
	if current:
		chunks.append(current)
	return chunks


class IncrementalAnalyzer:
	"""Keeps per-document extraction results current without full re-parses."""

	def __init__(
		self,
		css_parser: CSSParser | None = None,
		scss_parser: SCSSParser | None = None,
		config: AnalyzerConfigSchema | None = None,
		cache: CacheManager[AnalysisResult] | None = None,
		error_handler: ErrorHandler | None = None,
	) -> None:
		"""
		Initialize the analyzer.

		Args:
		    css_parser: Extractor for CSS custom properties
		    scss_parser: Extractor for SCSS variables
		    config: Chunk, buffer and delay settings
		    cache: Per-document results, keyed by URI
		    error_handler: Receives region parse failures

		"""
		self.css_parser = css_parser or CSSParser()
		self.scss_parser = scss_parser or SCSSParser()
		self.config = config or AnalyzerConfigSchema()
		if cache is None:
			cache = CacheManager("analysis-results", self.config.cache_size, ttl=None)
		self.cache = cache
		self.error_handler = error_handler or ErrorHandler()
		self._tasks: dict[str, asyncio.Task[AnalysisResult | None]] = {}
		self._task_versions: dict[str, int] = {}
		self._pending: set[str] = set()
		self._in_progress: set[str] = set()

	def analyze_visible_regions(self, document: DocumentSource, visible_ranges: list[Range]) -> AnalysisResult:
		"""
		Parse the visible ranges now and schedule the rest of the document.

		Only lines not analyzed yet are parsed. When called from a running
		event loop and the document is not complete, a background pass is
		scheduled after ``background_delay`` seconds.

		Args:
		    document: The document being displayed
		    visible_ranges: Ranges currently on screen

		Returns:
		    AnalysisResult: The cached result, including the visible regions

		"""
		result = self._result_for(document)
		visible = merge_regions(
			[
				AnalysisRegion(r.start.line, min(r.end.line, document.line_count - 1), "high")
				for r in visible_ranges
				if r.start.line < document.line_count
			]
		)
		fresh = [
			piece
			for region in visible
			for piece in self._unanalyzed_parts(region, result.analyzed_regions)
		]
		if fresh:
			result.merge(self._analyze_regions(document, fresh), fresh)
		self._update_completion(result, document)
		self.cache.set(document.uri, result)

		if not result.is_complete:
			self._schedule_background(document)
		return result

	def process_incremental_change(self, document: DocumentSource, changes: list[TextChange]) -> AnalysisResult:
		"""
		Re-parse only the lines around each edit.

		Items after a multi-line edit are moved by the number of lines it added
		or removed; items inside the affected regions are dropped and replaced
		by a fresh parse of exactly those regions. Everything else is kept. A background pass
		for the new version is scheduled while the result is incomplete.

		Args:
		    document: The document after the edits
		    changes: The edits, in coordinates of the previous text

		Returns:
		    AnalysisResult: The updated result

		"""
		result = self.cache.get(document.uri)
		if result is None:
			result = AnalysisResult(version=document.version)

		for change in sorted(changes, key=lambda c: c.range.start, reverse=True):
			result.discard_lines(
				[AnalysisRegion(change.range.start.line, change.range.end.line)]
			)
			result.shift_lines_after(change.range.end.line, change.line_delta)

		affected = self.calculate_affected_regions(changes, document.line_count)
		result.discard_lines(affected)
		result.merge(self._analyze_regions(document, affected), affected)
		result.version = document.version
		self._update_completion(result, document)
		self.cache.set(document.uri, result)
		logger.debug(
			"Re-analyzed %s in %s",
			document.uri,
			", ".join(f"{r.start_line}-{r.end_line}" for r in affected),
		)
		if not result.is_complete:
			self._schedule_background(document)
		return result

	def calculate_affected_regions(self, changes: list[TextChange], line_count: int) -> list[AnalysisRegion]:
		"""
		Compute the regions to re-parse for a set of edits.

		Each edit covers its lines in the new text, widened by ``buffer_lines``
		on both sides and clamped to the document. Overlapping and adjacent
		regions are merged.

		Args:
		    changes: The edits, in coordinates of the previous text
		    line_count: Line count of the new text

		Returns:
		    list[AnalysisRegion]: High-priority regions in new-text coordinates

		"""
		buffer = self.config.buffer_lines
		last_line = max(line_count - 1, 0)
		regions: list[AnalysisRegion] = []
		for change in sorted(changes, key=lambda c: c.range.start, reverse=True):
			delta = change.line_delta
			regions = [
				replace(r, start_line=r.start_line + delta, end_line=r.end_line + delta)
				if r.start_line > change.range.end.line
				else r
				for r in regions
			]
			start = change.range.start.line
			end = start + change.text.count("\n")
			regions.append(AnalysisRegion(max(0, start - buffer), min(last_line, end + buffer), "high"))
		return merge_regions([r for r in regions if r.start_line <= last_line])

	async def analyze_remaining(self, document: DocumentSource) -> AnalysisResult | None:
		"""
		Parse every line not analyzed yet, one chunk at a time.

		Control is yielded for ``yield_delay`` seconds after each chunk. The pass
		stops early if the document is invalidated or its version changes.

		Returns:
		    The completed result, or ``None`` if the pass was abandoned

		"""
		self._in_progress.add(document.uri)
		try:
			while True:
				result = self.cache.get(document.uri)
				if result is None or result.version != document.version:
					logger.debug("Background analysis of %s abandoned", document.uri)
					return None
				gaps = remaining_regions(result.analyzed_regions, document.line_count)
				if not gaps:
					result.is_complete = True
					return result
				chunk = split_into_chunks(gaps, self.config.chunk_lines)[0]
				result.merge(self._analyze_regions(document, chunk), chunk)
				self._update_completion(result, document)
				await asyncio.sleep(self.config.yield_delay)
		finally:
			self._in_progress.discard(document.uri)

	async def wait_for_background(self, uri: str) -> None:
		"""Wait until the background pass of ``uri``, if any, has finished."""
		task = self._tasks.get(uri)
		if task is not None:
			with contextlib.suppress(asyncio.CancelledError):
				await task

	def get_analysis_result(self, uri: str) -> AnalysisResult | None:
		"""Return the cached result of a document, or ``None``."""
		return self.cache.get(uri)

	def invalidate_document(self, uri: str) -> None:
		"""Forget a document and cancel its background pass."""
		self.cache.delete(uri)
		task = self._tasks.pop(uri, None)
		self._task_versions.pop(uri, None)
		if task is not None and not task.done():
			task.cancel()
		self._pending.discard(uri)
		self._in_progress.discard(uri)

	def clear_cache(self) -> None:
		"""Forget every document and cancel every background pass."""
		for uri in list(self._tasks):
			self.invalidate_document(uri)
		self.cache.clear()

	def get_stats(self) -> AnalyzerStats:
		"""Return counts of cached, scheduled and running analyses."""
		return AnalyzerStats(
			cached_documents=len(self.cache),
			pending_analysis=len(self._pending),
			in_progress=len(self._in_progress),
			cache=self.cache.get_stats(),
		)

	def _result_for(self, document: DocumentSource) -> AnalysisResult:
		result = self.cache.get(document.uri)
		if result is not None and result.version != document.version:
			logger.debug("Discarding analysis of %s v%d", document.uri, result.version)
			self.invalidate_document(document.uri)
			result = None
		if result is None:
			result = AnalysisResult(version=document.version)
		return result

	@staticmethod
	def _unanalyzed_parts(region: AnalysisRegion, analyzed: list[AnalysisRegion]) -> list[AnalysisRegion]:
		parts = [region]
		for done in analyzed:
			parts = [piece for part in parts for piece in subtract_region(part, done)]
		return parts

	@staticmethod
	def _update_completion(result: AnalysisResult, document: DocumentSource) -> None:
		result.is_complete = result.covered_lines(document.line_count) >= document.line_count

	def _schedule_background(self, document: DocumentSource) -> None:
		uri = document.uri
		existing = self._tasks.get(uri)
		if existing is not None and not existing.done():
			if self._task_versions.get(uri) == document.version:
				return
			# A pass for an older version would abandon itself once it wakes up
			logger.debug("Rescheduling background analysis of %s for v%d", uri, document.version)
			existing.cancel()
		try:
			loop = asyncio.get_running_loop()
		except RuntimeError:
			logger.debug("No running event loop; background analysis of %s not scheduled", uri)
			return
		self._pending.add(uri)
		task = loop.create_task(self._run_background(document), name=f"colorvars-analysis:{uri}")
		self._tasks[uri] = task
		self._task_versions[uri] = document.version
		task.add_done_callback(lambda done: self._forget_task(uri, done))

	async def _run_background(self, document: DocumentSource) -> AnalysisResult | None:
		await asyncio.sleep(self.config.background_delay)
		self._pending.discard(document.uri)
		return await self.analyze_remaining(document)

	def _forget_task(self, uri: str, task: asyncio.Task[AnalysisResult | None]) -> None:
		if self._tasks.get(uri) is task:
			del self._tasks[uri]
			self._task_versions.pop(uri, None)
			self._pending.discard(uri)
		if not task.cancelled() and task.exception() is not None:
			logger.error("Background analysis of %s failed", uri, exc_info=task.exception())

	def _analyze_regions(self, document: DocumentSource, regions: list[AnalysisRegion]) -> ParseResult:
		parsed = ParseResult()
		for region in regions:
			try:
				parsed.extend(self._parse(document, self._region_text(document, region)).shift_lines(region.start_line))
			except Exception as e:
				logger.warning("Failed to analyze lines %d-%d of %s", region.start_line, region.end_line, document.uri)
				self.error_handler.handle_error(ParserError(document.language_id, document.uri, str(e)))
		return parsed

	def _parse(self, document: DocumentSource, text: str) -> ParseResult:
		if document.language_id == "css":
			return self.css_parser.parse_text(text)
		if document.language_id in ("scss", "sass"):
			primary, secondary = self.scss_parser, self.css_parser
		else:
			primary, secondary = self.css_parser, self.scss_parser
		# Color literals are the same for both extractors
		parsed = primary.parse_text(text)
		parsed.variable_definitions.extend(secondary.find_variable_definitions(text))
		parsed.variable_usages.extend(secondary.find_variable_usages(text))
		return parsed

	@staticmethod
	def _region_text(document: DocumentSource, region: AnalysisRegion) -> str:
		end_line = min(region.end_line, document.line_count - 1)
		end = Position(end_line, len(document.line_at(end_line).text))
		return document.get_text(Range(Position(region.start_line, 0), end))
