#!/usr/bin/env python3
"""
Running sums over the values produced by a pass.

A small state machine over ( local_sum, global_sum, basis ). The basis is
the SI unit signature of the values summed since the last reset, or None
while everything summed was dimensionless. Sums never mix bases: a value
with a different basis (including dimensionless <-> unit) resets both sums
to that single value.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

import sympy
from sympy import Expr
from sympy.physics.units import convert_to

from livecalc.errors import AggregationError
from livecalc.quantities import Number, Text, UnitQuantity, Value, format_number, reduce_to_si, render_value, split_quantity, unit_atoms

logger = logging.getLogger( __name__ )

CHECKPOINT_KEYWORDS = ( "total", "sum", "summe", "gesamt" )


def is_checkpoint_line( line: str ) -> bool:
    """
    True when the lower-cased line contains any checkpoint keyword as a substring.

    No word boundaries: "subtotal" and "sum2" are checkpoints too.
    """
    lowered = line.lower()
    return any( keyword in lowered for keyword in CHECKPOINT_KEYWORDS )


@dataclass( frozen=True )
class AccumulatorState:
    """
    Snapshot of the running sums.

    Requires:
        - basis is None or a product of SI base units with no magnitude
        - display_unit is None exactly when basis is None

    Ensures:
        - basis is None iff every value summed since the last reset was dimensionless
    """

    local_sum    : Expr           = sympy.S.Zero
    global_sum   : Expr           = sympy.S.Zero
    basis        : Optional[Expr] = None
    display_unit : Optional[Expr] = None


class SumAccumulator:
    """
    Folds line values into local and global running sums.

    Ensures:
        - observe() either commits a complete new state or raises and keeps the old one
        - checkpoint() resets local_sum only
    """

    def __init__( self, precision: int = 18 ) -> None:
        self.precision = precision
        self.state     = AccumulatorState()

    @property
    def local_sum( self ) -> Expr:
        return self.state.local_sum

    @property
    def global_sum( self ) -> Expr:
        return self.state.global_sum

    @property
    def basis( self ) -> Optional[Expr]:
        return self.state.basis

    def observe( self, value: Value ) -> None:
        """
        Fold one classified value into the sums.

        Requires:
            - value is a Number, UnitQuantity or Text

        Ensures:
            - UnitQuantity: reduced to SI; a new or different basis resets both sums to its magnitude, else it is added
            - Number: resets both sums and clears the basis when a basis is set, else it is added
            - Text: ignored

        Raises:
            - AggregationError when the value cannot be summed; state is unchanged
        """
        if isinstance( value, Text ):
            return
        if isinstance( value, UnitQuantity ):
            self.state = self._observe_quantity( value )
        elif isinstance( value, Number ):
            self.state = self._observe_number( value.magnitude )
        else:
            raise AggregationError( f"Cannot sum value of type {type( value ).__name__}" )

    def _observe_quantity( self, value: UnitQuantity ) -> AccumulatorState:
        try:
            reduced = reduce_to_si( value.magnitude * value.unit )
        except Exception as e:
            raise AggregationError( f"Cannot reduce {value.unit} to SI units: {e}" ) from e

        magnitude, basis = split_quantity( reduced )
        self._check_summable( magnitude )

        # dimensionless quantities (percent, radian) reduce to a bare number
        if basis == sympy.S.One:
            return self._next_number_state( magnitude )

        state = self.state
        if state.basis is None or state.basis != basis:
            logger.debug( f"Basis change {state.basis} -> {basis}, resetting sums" )
            return AccumulatorState( magnitude, magnitude, basis, value.unit )

        return AccumulatorState( state.local_sum + magnitude, state.global_sum + magnitude, basis, value.unit )

    def _observe_number( self, magnitude: Expr ) -> AccumulatorState:
        self._check_summable( magnitude )
        return self._next_number_state( magnitude )

    def _next_number_state( self, magnitude: Expr ) -> AccumulatorState:
        state = self.state
        if state.basis is not None:
            logger.debug( f"Basis change {state.basis} -> dimensionless, resetting sums" )
            return AccumulatorState( magnitude, magnitude, None, None )
        return replace( state, local_sum=state.local_sum + magnitude, global_sum=state.global_sum + magnitude )

    def _check_summable( self, magnitude: Expr ) -> None:
        if not magnitude.is_number or magnitude.is_extended_real is False:
            raise AggregationError( f"Cannot add {magnitude} to a running sum" )
        if magnitude.is_finite is False:
            raise AggregationError( f"Cannot add {magnitude} to a running sum" )

    def checkpoint( self ) -> str:
        """
        Render the local subtotal and reset it to zero.

        Ensures:
            - With a basis the subtotal is shown in the unit of the last observed quantity
            - global_sum and basis are unchanged
        """
        displayed  = self.render( self.state.local_sum )
        self.state = replace( self.state, local_sum=sympy.S.Zero )
        return displayed

    def render_global( self ) -> str:
        """Render the global running sum without changing any state."""
        return self.render( self.state.global_sum )

    def render( self, amount: Expr ) -> str:
        state = self.state
        if state.basis is None:
            return format_number( amount, self.precision )

        if amount == 0:
            return render_value( UnitQuantity( sympy.S.Zero, state.display_unit ), self.precision )

        quantity = convert_to( amount * state.basis, unit_atoms( state.display_unit ) )
        magnitude, unit = split_quantity( quantity )
        return render_value( UnitQuantity( magnitude, unit ), self.precision )


def quick_smoke_test():
    """Quick smoke test for the sum accumulator."""
    from livecalc.quantities import UNIT_NAMESPACE

    print( "Testing unit sums..." )
    accumulator = SumAccumulator()
    accumulator.observe( UnitQuantity( sympy.Integer( 5 ), UNIT_NAMESPACE[ "cm" ] ) )
    accumulator.observe( UnitQuantity( sympy.Integer( 3 ), UNIT_NAMESPACE[ "cm" ] ) )
    assert accumulator.checkpoint() == "8 cm"
    print( "✓ 5 cm + 3 cm = 8 cm" )

    print( "Testing checkpoints..." )
    accumulator = SumAccumulator()
    accumulator.observe( Number( sympy.Integer( 5 ) ) )
    assert accumulator.checkpoint() == "5"
    accumulator.observe( Number( sympy.Integer( 10 ) ) )
    assert accumulator.checkpoint() == "10"
    assert accumulator.render_global() == "15"
    print( "✓ local sums reset, global sum keeps running" )


if __name__ == "__main__":
    quick_smoke_test()
