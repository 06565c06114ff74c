#!/usr/bin/env python3
"""
Entry points the host UI calls on every edit.

    run()            - screen-mode rendering, one string per buffer line
    run_for_export() - plain text with "# " result comments, errors suppressed

Each call is one complete, synchronous pass: a fresh evaluation session, a
fresh accumulator, the config read once at the start.
"""

from typing import List, Optional

from livecalc.config import CalcConfig
from livecalc.formatter import ExportFormatter, ScreenFormatter, max_line_length, render_outcomes
from livecalc.line_evaluator import LineEvaluator
from livecalc.outcomes import PassResult


def evaluate( buffer: str, config: Optional[CalcConfig] = None ) -> PassResult:
    """
    Evaluate buffer and return the structured outcomes of the pass.

    Requires:
        - buffer is the complete text of the notepad

    Ensures:
        - Uses CalcConfig() defaults when config is None
    """
    return LineEvaluator( config or CalcConfig() ).evaluate_buffer( buffer )


def run( buffer: str, config: Optional[CalcConfig] = None ) -> List[str]:
    """
    Screen-mode rendering of buffer.

    Ensures:
        - One rendered string per buffer line, each ending in a newline
        - Identical arguments always produce identical output
    """
    config   = config or CalcConfig()
    outcomes = evaluate( buffer, config ).outcomes
    return render_outcomes( outcomes, ScreenFormatter( config, max_line_length( outcomes ) ) )


def run_for_export( buffer: str, config: Optional[CalcConfig] = None ) -> str:
    """
    Plain-text rendering of buffer suitable for saving or copying.

    Ensures:
        - Results are prefixed with "# " so the export re-evaluates cleanly
        - Error messages never appear
    """
    config   = config or CalcConfig()
    outcomes = evaluate( buffer, config ).outcomes
    return "".join( render_outcomes( outcomes, ExportFormatter( config, max_line_length( outcomes ) ) ) )


def quick_smoke_test():
    """Quick smoke test for the engine entry points."""

    print( "Testing scenarios..." )
    assert run_for_export( "A = 2\nB = A * 3\nB\n" ).splitlines()[ 2 ] == "B\t# 6"
    assert run_for_export( "5 cm\n3 cm\nSum\n" ).splitlines()[ 2 ] == "Sum\t# 8 cm"
    assert run_for_export( "0xff + 1" ) == "0xff + 1\t# 256\n"
    assert run_for_export( "10 to bin" ) == "10 to bin\t# 1010\n"
    print( "✓ scenarios render as expected" )

    print( "Testing determinism..." )
    buffer = "x = 3\nx ^ 2\nbogus +\ntotal\n"
    assert run( buffer ) == run( buffer )
    print( "✓ run() is deterministic" )


if __name__ == "__main__":
    quick_smoke_test()
