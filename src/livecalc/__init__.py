"""
livecalc: notepad calculator engine.

Each line of a text buffer is evaluated as an arithmetic/unit expression in
the context of the lines above it, annotated with its value, and summed into
running subtotals shown on "total"/"sum" lines.

Modules:
    engine.py          - run(), run_for_export(), evaluate(): one pass over a buffer
    line_evaluator.py  - LineEvaluator: per-line classification and outcomes
    environment.py     - ExpressionEnvironment: sympy session with bindings
    base_extension.py  - hex/bin/oct/dec literals, conversions and phrase rewriting
    accumulator.py     - SumAccumulator: local/global sums with unit-basis resets
    quantities.py      - Number | UnitQuantity | Text value model and rendering
    formatter.py       - ScreenFormatter / ExportFormatter
    outcomes.py        - LineOutcome variants and PassResult
    config.py          - CalcConfig (pydantic)
    config_loader.py   - env > INI file > defaults
    errors.py          - CalcError hierarchy
"""

from livecalc.config import CalcConfig
from livecalc.engine import evaluate, run, run_for_export

__all__ = [ "CalcConfig", "evaluate", "run", "run_for_export" ]
