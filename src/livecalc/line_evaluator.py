#!/usr/bin/env python3
"""
Line evaluator: drives one pass over a buffer.

For every line, in buffer order:
    1. checkpoint keyword        → CheckpointOutcome (never evaluated)
    2. evaluation failure        → ErrorOutcome (bindings and sums untouched)
    3. blank line or no value    → BlankOutcome
    4. otherwise                 → value folded into the sums, ValueOutcome

One ExpressionEnvironment and one SumAccumulator live for the whole pass and
are discarded afterwards. The outcome list is a pure function of the buffer
text and the config.
"""

import logging
from typing import List

from livecalc.accumulator import SumAccumulator, is_checkpoint_line
from livecalc.base_extension import find_conversion, normalize_decimal_commas, to_base
from livecalc.config import CalcConfig
from livecalc.environment import ExpressionEnvironment
from livecalc.errors import AggregationError, BaseConversionError, CalcError
from livecalc.outcomes import BlankOutcome, CheckpointOutcome, ErrorOutcome, LineOutcome, PassResult, ValueOutcome
from livecalc.quantities import Number, Text, Value, classify, render_value

logger = logging.getLogger( __name__ )


def split_lines( buffer: str ) -> List[str]:
    """
    Split a buffer into raw lines.

    Ensures:
        - Blank lines are preserved; a trailing newline yields a final empty line
        - Windows line endings are treated as plain newlines
    """
    return buffer.replace( "\r\n", "\n" ).split( "\n" )


class LineEvaluator:
    """
    Turns buffer text into one LineOutcome per line.

    Requires:
        - config is fixed for the lifetime of each evaluate_buffer() call
    """

    def __init__( self, config: CalcConfig ) -> None:
        self.config = config

    def evaluate_buffer( self, buffer: str ) -> PassResult:
        """
        Run one full pass over buffer.

        Ensures:
            - One outcome per raw line, in order
            - Raw lines are reported unchanged; decimal-comma normalization only affects evaluation
            - A failing line never stops the pass
        """
        raw_lines   = split_lines( buffer )
        eval_lines  = split_lines( normalize_decimal_commas( buffer ) )
        environment = ExpressionEnvironment( self.config )
        accumulator = SumAccumulator( self.config.precision )

        outcomes = [ self._evaluate_line( raw, text, environment, accumulator ) for raw, text in zip( raw_lines, eval_lines ) ]
        result   = PassResult( outcomes, global_total=accumulator.render_global() )

        logger.debug( f"Evaluated {len( outcomes )} lines, {result.error_count} errors" )
        return result

    def _evaluate_line( self, raw: str, text: str, environment: ExpressionEnvironment, accumulator: SumAccumulator ) -> LineOutcome:
        if is_checkpoint_line( text ):
            return CheckpointOutcome( raw, accumulator.checkpoint() )

        try:
            environment.evaluate( text )
        except CalcError as e:
            logger.debug( f"Error evaluating line [{raw}]: {e.message}" )
            return ErrorOutcome( raw, e.message, e )

        value = classify( environment.current() )
        if not text.strip() or value is None:
            return BlankOutcome( raw )

        try:
            rendered = self.render_for_display( text, value )
            accumulator.observe( value )
        except AggregationError as e:
            logger.warning( f"Error updating sum for line [{raw}]: {e.message}" )
            return ErrorOutcome( raw, e.message, e )
        except CalcError as e:
            logger.debug( f"Error rendering line [{raw}]: {e.message}" )
            return ErrorOutcome( raw, e.message, e )

        return ValueOutcome( raw, value, rendered )

    def render_for_display( self, text: str, value: Value ) -> str:
        """
        Rendered result of a line, converted to a base when the line asks for one.

        Requires:
            - value is the classified value of text

        Ensures:
            - When text holds a "to|in <base>" phrase and value is not already text,
              the value is shown in that base
            - A failed conversion falls back to the plain rendering instead of failing the line
        """
        rendered = render_value( value, self.config.precision )
        if isinstance( value, Text ):
            return rendered

        base = find_conversion( text )
        if base is None:
            return rendered

        try:
            amount = value.magnitude if isinstance( value, Number ) else value.magnitude * value.unit
            return to_base( base, amount, self.config )
        except BaseConversionError as e:
            logger.debug( f"Display conversion to {base.name} failed for [{text}]: {e.message}" )
            return rendered
