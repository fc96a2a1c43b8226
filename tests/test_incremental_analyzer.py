"""Tests for the region-based incremental analyzer."""

from __future__ import annotations

import asyncio

import pytest

from colorvars.analysis import (
	AnalysisRegion,
	IncrementalAnalyzer,
	TextChange,
	merge_regions,
	remaining_regions,
	split_into_chunks,
	subtract_region,
)
from colorvars.config import AnalyzerConfigSchema
from colorvars.documents import TextDocument
from colorvars.errors import ErrorHandler, ErrorType
from colorvars.models import ParseResult, Position, Range
from colorvars.parsers import CSSParser

URI = "file:///workspace/tokens.css"


class RecordingParser(CSSParser):
	"""CSS parser remembering every text it was asked to parse."""

	def __init__(self) -> None:
		super().__init__()
		self.texts: list[str] = []

	def parse_text(self, text: str) -> ParseResult:
		self.texts.append(text)
		return super().parse_text(text)


class BrokenParser(CSSParser):
	"""CSS parser failing on every call."""

	def parse_text(self, text: str) -> ParseResult:
		msg = "extractor exploded"
		raise ValueError(msg)


def token_lines(count: int) -> list[str]:
	"""One custom property definition per line."""
	return [f"--v{index}: #0000{index % 10}{index % 10};" for index in range(count)]


def whole_document(document: TextDocument) -> list[Range]:
	"""A single visible range covering every line."""
	return [Range(Position(0, 0), Position(document.line_count - 1, 0))]


@pytest.mark.unit
@pytest.mark.analysis
class TestRegionHelpers:
	"""Test cases for the region arithmetic."""

	def test_merge_adjacent_and_overlapping(self) -> None:
		"""Adjacent and overlapping regions merge; the highest priority survives."""
		merged = merge_regions(
			[AnalysisRegion(5, 9, "low"), AnalysisRegion(0, 4, "medium"), AnalysisRegion(8, 12, "high")]
		)

		assert merged == [AnalysisRegion(0, 12, "high")]

	def test_gap_keeps_regions_apart(self) -> None:
		"""A one-line gap keeps regions separate."""
		merged = merge_regions([AnalysisRegion(6, 9), AnalysisRegion(0, 4)])

		assert merged == [AnalysisRegion(0, 4), AnalysisRegion(6, 9)]

	def test_subtract_region(self) -> None:
		"""Subtracting the middle leaves both ends."""
		assert subtract_region(AnalysisRegion(0, 20), AnalysisRegion(5, 10)) == [
			AnalysisRegion(0, 4),
			AnalysisRegion(11, 20),
		]
		assert subtract_region(AnalysisRegion(0, 4), AnalysisRegion(5, 10)) == [AnalysisRegion(0, 4)]
		assert subtract_region(AnalysisRegion(5, 6), AnalysisRegion(0, 10)) == []

	def test_remaining_regions(self) -> None:
		"""Gaps before, between and after the analyzed regions are returned."""
		analyzed = [AnalysisRegion(10, 19, "high"), AnalysisRegion(25, 26)]

		assert remaining_regions(analyzed, 30) == [
			AnalysisRegion(0, 9),
			AnalysisRegion(20, 24),
			AnalysisRegion(27, 29),
		]
		assert remaining_regions([AnalysisRegion(0, 29)], 30) == []
		assert remaining_regions([], 0) == []

	def test_split_long_region(self) -> None:
		"""A region longer than a chunk is cut into chunk-sized pieces."""
		chunks = split_into_chunks([AnalysisRegion(0, 119)], 50)

		assert chunks == [[AnalysisRegion(0, 49)], [AnalysisRegion(50, 99)], [AnalysisRegion(100, 119)]]

	def test_split_groups_small_regions(self) -> None:
		"""Small regions share a chunk while they fit."""
		chunks = split_into_chunks([AnalysisRegion(0, 9), AnalysisRegion(20, 29), AnalysisRegion(40, 79)], 50)

		assert chunks == [[AnalysisRegion(0, 9), AnalysisRegion(20, 29)], [AnalysisRegion(40, 79)]]

	def test_text_change_line_delta(self) -> None:
		"""The delta counts added minus replaced line breaks."""
		insert = TextChange(Range.on_line(3, 0, 0), "a\nb\n")
		delete = TextChange(Range(Position(3, 0), Position(6, 0)), "")

		assert insert.line_delta == 2
		assert delete.line_delta == -3


@pytest.mark.unit
@pytest.mark.analysis
class TestAffectedRegions:
	"""Test cases for IncrementalAnalyzer.calculate_affected_regions."""

	@pytest.fixture
	def analyzer(self) -> IncrementalAnalyzer:
		"""An analyzer with the default five-line buffer."""
		return IncrementalAnalyzer()

	@pytest.mark.parametrize(
		("line", "expected"),
		[(15, AnalysisRegion(10, 20, "high")), (2, AnalysisRegion(0, 7, "high")), (28, AnalysisRegion(23, 29, "high"))],
	)
	def test_single_line_edit(self, analyzer: IncrementalAnalyzer, line: int, expected: AnalysisRegion) -> None:
		"""A single-line edit covers five lines on each side, clamped to the document."""
		change = TextChange(Range.on_line(line, 0, 3), "x")

		assert analyzer.calculate_affected_regions([change], 30) == [expected]

	def test_nearby_edits_merge(self, analyzer: IncrementalAnalyzer) -> None:
		"""Regions of edits close to each other are merged."""
		changes = [TextChange(Range.on_line(10, 0, 1), "a"), TextChange(Range.on_line(18, 0, 1), "b")]

		assert analyzer.calculate_affected_regions(changes, 40) == [AnalysisRegion(5, 23, "high")]

	def test_distant_edits_stay_separate(self, analyzer: IncrementalAnalyzer) -> None:
		"""Edits far apart produce separate regions, sorted by line."""
		changes = [TextChange(Range.on_line(25, 0, 1), "a"), TextChange(Range.on_line(3, 0, 1), "b")]

		assert analyzer.calculate_affected_regions(changes, 40) == [
			AnalysisRegion(0, 8, "high"),
			AnalysisRegion(20, 30, "high"),
		]

	def test_inserted_lines_extend_the_region(self, analyzer: IncrementalAnalyzer) -> None:
		"""Lines added by an edit are covered in new-text coordinates."""
		changes = [TextChange(Range.on_line(20, 0, 0), "a\nb\n"), TextChange(Range.on_line(5, 0, 1), "c")]

		assert analyzer.calculate_affected_regions(changes, 42) == [
			AnalysisRegion(0, 10, "high"),
			AnalysisRegion(15, 27, "high"),
		]


@pytest.mark.analysis
class TestIncrementalChanges:
	"""Test cases for visible-region analysis and incremental updates."""

	def test_visible_regions_only(self) -> None:
		"""Only the visible lines are parsed when no event loop runs."""
		# Arrange
		analyzer = IncrementalAnalyzer()
		document = TextDocument(URI, "\n".join(token_lines(40)))

		# Act
		result = analyzer.analyze_visible_regions(document, [Range(Position(10, 0), Position(14, 0))])

		# Assert
		assert [d.name for d in result.variable_definitions] == ["--v10", "--v11", "--v12", "--v13", "--v14"]
		assert result.analyzed_regions == [AnalysisRegion(10, 14, "high")]
		assert not result.is_complete

	def test_already_analyzed_lines_are_not_parsed_again(self) -> None:
		"""Overlapping visible ranges only parse the new lines."""
		parser = RecordingParser()
		analyzer = IncrementalAnalyzer(css_parser=parser)
		lines = token_lines(40)
		document = TextDocument(URI, "\n".join(lines))

		analyzer.analyze_visible_regions(document, [Range(Position(0, 0), Position(9, 0))])
		result = analyzer.analyze_visible_regions(document, [Range(Position(5, 0), Position(12, 0))])

		assert parser.texts[-1] == "\n".join(lines[10:13])
		assert [d.name for d in result.variable_definitions] == [f"--v{index}" for index in range(13)]

	def test_single_line_edit_keeps_distant_entries(self) -> None:
		"""Entries outside the buffered edit region are kept as they were and not re-parsed."""
		# Arrange
		parser = RecordingParser()
		analyzer = IncrementalAnalyzer(css_parser=parser)
		lines = token_lines(30)
		document = TextDocument(URI, "\n".join(lines))
		before = list(analyzer.analyze_visible_regions(document, whole_document(document)).variable_definitions)

		new_lines = list(lines)
		new_lines[15] = "--changed: blue;"
		updated = document.update("\n".join(new_lines))
		change = TextChange(Range.on_line(15, 0, len(lines[15])), "--changed: blue;")

		# Act
		result = analyzer.process_incremental_change(updated, [change])

		# Assert
		assert parser.texts[-1] == "\n".join(new_lines[10:21])
		kept = [d for d in before if not 10 <= d.range.start.line <= 20]
		assert all(any(d is k for d in result.variable_definitions) for k in kept)
		expected = parser.find_variable_definitions(updated.get_text())
		assert [d.name for d in result.variable_definitions] == [d.name for d in expected]
		assert result.version == updated.version
		assert result.is_complete

	def test_inserted_lines_shift_later_entries(self) -> None:
		"""After inserting lines the result matches a full parse of the new text."""
		analyzer = IncrementalAnalyzer()
		lines = token_lines(30)
		document = TextDocument(URI, "\n".join(lines))
		analyzer.analyze_visible_regions(document, whole_document(document))

		new_lines = [*lines[:6], "--new1: red;", "--new2: red;", *lines[6:]]
		updated = document.update("\n".join(new_lines))
		change = TextChange(Range.on_line(5, len(lines[5]), len(lines[5])), "\n--new1: red;\n--new2: red;")

		result = analyzer.process_incremental_change(updated, [change])

		assert result.variable_definitions == CSSParser().find_variable_definitions(updated.get_text())
		assert result.color_matches == CSSParser().find_color_values(updated.get_text())
		assert result.analyzed_regions == [AnalysisRegion(0, 31, "high")]
		assert result.is_complete

	def test_deleted_lines_shift_later_entries(self) -> None:
		"""After deleting lines the result matches a full parse of the new text."""
		analyzer = IncrementalAnalyzer()
		lines = token_lines(30)
		document = TextDocument(URI, "\n".join(lines))
		analyzer.analyze_visible_regions(document, whole_document(document))

		new_lines = [*lines[:10], *lines[13:]]
		updated = document.update("\n".join(new_lines))
		change = TextChange(Range(Position(10, 0), Position(13, 0)), "")

		result = analyzer.process_incremental_change(updated, [change])

		assert result.variable_definitions == CSSParser().find_variable_definitions(updated.get_text())
		assert result.is_complete

	def test_new_version_discards_old_result(self) -> None:
		"""Visible analysis of a newer version starts from scratch."""
		analyzer = IncrementalAnalyzer()
		document = TextDocument(URI, "--old: red;")
		analyzer.analyze_visible_regions(document, whole_document(document))

		updated = document.update("--new: blue;")
		result = analyzer.analyze_visible_regions(updated, whole_document(updated))

		assert [d.name for d in result.variable_definitions] == ["--new"]
		assert result.version == updated.version

	def test_scss_document_has_no_duplicate_colors(self) -> None:
		"""Both extractors run on SCSS text, colors are reported once."""
		analyzer = IncrementalAnalyzer()
		document = TextDocument("file:///workspace/theme.scss", "$a: red;\n:root { --b: blue; }")

		result = analyzer.analyze_visible_regions(document, whole_document(document))

		assert [c.value for c in result.color_matches] == ["red", "blue"]
		assert [d.name for d in result.variable_definitions] == ["$a", "--b"]

	def test_parser_failure_is_reported(self) -> None:
		"""A failing region is logged and reported as a parser error."""
		handler = ErrorHandler()
		analyzer = IncrementalAnalyzer(css_parser=BrokenParser(), error_handler=handler)
		document = TextDocument(URI, "--a: red;")

		result = analyzer.analyze_visible_regions(document, whole_document(document))

		assert result.variable_definitions == []
		assert handler.get_error_stats().errors_by_type[ErrorType.PARSER_ERROR] == 1


@pytest.mark.analysis
@pytest.mark.asynchronous
class TestBackgroundAnalysis:
	"""Test cases for the chunked background pass."""

	@pytest.fixture
	def analyzer(self) -> IncrementalAnalyzer:
		"""An analyzer with small chunks and no delays."""
		return IncrementalAnalyzer(config=AnalyzerConfigSchema(chunk_lines=20, background_delay=0, yield_delay=0))

	@pytest.mark.asyncio
	async def test_background_completes_document(self, analyzer: IncrementalAnalyzer) -> None:
		"""The background pass analyzes everything outside the visible region."""
		# Arrange
		document = TextDocument(URI, "\n".join(token_lines(120)))

		# Act
		partial = analyzer.analyze_visible_regions(document, [Range(Position(50, 0), Position(59, 0))])
		assert not partial.is_complete
		assert analyzer.get_stats().pending_analysis == 1
		await analyzer.wait_for_background(URI)

		# Assert
		result = analyzer.get_analysis_result(URI)
		assert result is not None
		assert result.is_complete
		assert result.variable_definitions == CSSParser().find_variable_definitions(document.get_text())
		stats = analyzer.get_stats()
		assert (stats.pending_analysis, stats.in_progress) == (0, 0)

	@pytest.mark.asyncio
	async def test_analyze_remaining_abandons_stale_version(self, analyzer: IncrementalAnalyzer) -> None:
		"""A pass for an outdated version stops without touching the result."""
		lines = token_lines(60)
		document = TextDocument(URI, "\n".join(lines))
		analyzer.analyze_visible_regions(document, [Range.on_line(0, 0, 0)])
		await analyzer.wait_for_background(URI)

		updated = document.update("\n".join([*lines[:59], "", lines[59]]))
		analyzer.process_incremental_change(updated, [TextChange(Range.on_line(59, 0, 0), "\n")])

		assert await analyzer.analyze_remaining(document) is None
		await analyzer.wait_for_background(URI)

	@pytest.mark.asyncio
	async def test_edit_while_pass_is_waiting(self) -> None:
		"""An edit before a scheduled pass starts reschedules it for the new version."""
		# Arrange
		config = AnalyzerConfigSchema(chunk_lines=20, background_delay=0.05, yield_delay=0)
		analyzer = IncrementalAnalyzer(config=config)
		lines = token_lines(100)
		document = TextDocument(URI, "\n".join(lines))
		visible = [Range(Position(0, 0), Position(9, 0))]
		analyzer.analyze_visible_regions(document, visible)
		waiting_task = analyzer._tasks[URI]

		# Act
		updated = document.update("\n".join(["--edited: red;", *lines[1:]]))
		edit = TextChange(Range.on_line(0, 0, len(lines[0])), "--edited: red;")
		analyzer.process_incremental_change(updated, [edit])
		analyzer.analyze_visible_regions(updated, visible)
		await analyzer.wait_for_background(URI)

		# Assert
		result = analyzer.get_analysis_result(URI)
		assert waiting_task.cancelled()
		assert result is not None
		assert result.is_complete
		assert result.version == updated.version
		assert result.variable_definitions == CSSParser().find_variable_definitions(updated.get_text())

	@pytest.mark.asyncio
	async def test_edit_schedules_pass(self, analyzer: IncrementalAnalyzer) -> None:
		"""An incremental change on a partial result completes it in the background."""
		lines = token_lines(80)
		document = TextDocument(URI, "\n".join(lines))

		analyzer.process_incremental_change(document, [TextChange(Range.on_line(40, 0, 0), "")])
		await analyzer.wait_for_background(URI)

		result = analyzer.get_analysis_result(URI)
		assert result is not None
		assert result.is_complete
		assert len(result.variable_definitions) == 80

	@pytest.mark.asyncio
	async def test_invalidate_cancels_background(self) -> None:
		"""Invalidating a document cancels its pending pass."""
		analyzer = IncrementalAnalyzer(config=AnalyzerConfigSchema(background_delay=10))
		document = TextDocument(URI, "\n".join(token_lines(60)))
		analyzer.analyze_visible_regions(document, [Range.on_line(0, 0, 0)])
		task = analyzer._tasks[URI]

		analyzer.invalidate_document(URI)
		with pytest.raises(asyncio.CancelledError):
			await task

		assert task.cancelled()
		assert analyzer.get_analysis_result(URI) is None
		assert analyzer.get_stats().pending_analysis == 0

	@pytest.mark.asyncio
	async def test_clear_cache(self, analyzer: IncrementalAnalyzer) -> None:
		"""Clearing forgets every document."""
		document = TextDocument(URI, "--a: red;")
		analyzer.analyze_visible_regions(document, whole_document(document))

		analyzer.clear_cache()

		assert analyzer.get_stats().cached_documents == 0
