"""Natural-language calculator engine."""

from numcalc.engine import Engine, quick_eval

__all__ = ["Engine", "quick_eval"]
