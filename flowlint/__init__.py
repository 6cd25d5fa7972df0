"""Type system, parser and semantics checker for workflow expressions, and glob filter validation."""

__version__ = "0.1.0"
__all__ = ["exprtype", "exprparser", "exprsema", "globcheck"]