"""Utility modules for ColorVars."""
