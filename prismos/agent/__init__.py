"""Decision source: hosted reasoning model with a deterministic rule fallback."""
from .rules import rule_based_decisions
from .source import DecisionSource
from .translate import translate_decisions

__all__ = ["DecisionSource", "rule_based_decisions", "translate_decisions"]
