"""Parsing of lint tool output into typed records."""

from .rules import RuleCatalog, enrich_rules, parse_rules
from .violations import parse_violations, relativize

__all__ = ["RuleCatalog", "enrich_rules", "parse_rules", "parse_violations", "relativize"]
