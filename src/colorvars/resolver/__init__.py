"""Variable resolution: reference chains, imports and workspace search."""

from colorvars.resolver.chain import ChainResolver, Frame, Reference
from colorvars.resolver.imports import ImportResolver, namespaced_lookup
from colorvars.resolver.outcome import Resolved, ResolutionOutcome, Unresolved
from colorvars.resolver.variable_resolver import UsageValidation, VariableResolver, theme_variable_name
from colorvars.resolver.workspace import WorkspaceSearch

__all__ = [
	"ChainResolver",
	"Frame",
	"ImportResolver",
	"Reference",
	"ResolutionOutcome",
	"Resolved",
	"Unresolved",
	"UsageValidation",
	"VariableResolver",
	"WorkspaceSearch",
	"namespaced_lookup",
	"theme_variable_name",
]
