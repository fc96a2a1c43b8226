"""Dependency graph utilities and the incremental analyzer."""

from colorvars.analysis.dependency_graph import (
	AffectedVariable,
	CircularReference,
	DefinitionValidation,
	Optimization,
	UsageReport,
	ValidationIssue,
	VariableGraph,
	VariableUsageCount,
)
from colorvars.analysis.incremental import (
	AnalysisRegion,
	AnalysisResult,
	AnalyzerStats,
	IncrementalAnalyzer,
	TextChange,
	merge_regions,
	remaining_regions,
	split_into_chunks,
	subtract_region,
)

__all__ = [
	"AffectedVariable",
	"AnalysisRegion",
	"AnalysisResult",
	"AnalyzerStats",
	"CircularReference",
	"DefinitionValidation",
	"IncrementalAnalyzer",
	"Optimization",
	"TextChange",
	"UsageReport",
	"ValidationIssue",
	"VariableGraph",
	"VariableUsageCount",
	"merge_regions",
	"remaining_regions",
	"split_into_chunks",
	"subtract_region",
]
