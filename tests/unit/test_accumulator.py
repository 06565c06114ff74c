"""
Unit tests for SumAccumulator and checkpoint keyword detection.

Tests the running-sum state machine including:
- Adding values that share a basis
- Basis resets on unit changes and dimensionless <-> unit transitions
- Checkpoints resetting the local sum only
- Rejection of values that cannot be summed, with state left unchanged
"""

import unittest

import sympy

from livecalc.accumulator import AccumulatorState, SumAccumulator, is_checkpoint_line
from livecalc.errors import AggregationError
from livecalc.quantities import UNIT_NAMESPACE, Number, Text, UnitQuantity


def quantity( magnitude, unit_name ):
    return UnitQuantity( sympy.Integer( magnitude ), UNIT_NAMESPACE[ unit_name ] )


def number( magnitude ):
    return Number( sympy.Integer( magnitude ) )


class TestCheckpointKeywords( unittest.TestCase ):
    """Checkpoint detection is a case-insensitive substring match."""

    def test_keywords_match_anywhere( self ):
        for line in ( "total", "Total:", "SUM", "subtotal123", "Summe", "gesamt", "sum2", "monthly total" ):
            with self.subTest( line=line ):
                self.assertTrue( is_checkpoint_line( line ) )

    def test_other_lines_are_not_checkpoints( self ):
        for line in ( "", "5 + 3", "x = 2", "10 to bin" ):
            with self.subTest( line=line ):
                self.assertFalse( is_checkpoint_line( line ) )


class TestSumAccumulator( unittest.TestCase ):
    """
    Tests for observe() / checkpoint() / render_global().

    Requires:
        - A fresh SumAccumulator per test

    Ensures:
        - basis is None exactly while only dimensionless values were summed
    """

    def setUp( self ):
        self.accumulator = SumAccumulator()
        self.meter       = UNIT_NAMESPACE[ "m" ]
        self.kilogram    = UNIT_NAMESPACE[ "kg" ]

    def test_initial_state( self ):
        self.assertEqual( self.accumulator.state, AccumulatorState() )
        self.assertEqual( self.accumulator.checkpoint(), "0" )

    def test_numbers_add( self ):
        self.accumulator.observe( number( 5 ) )
        self.accumulator.observe( number( 10 ) )

        self.assertEqual( self.accumulator.local_sum, 15 )
        self.assertEqual( self.accumulator.global_sum, 15 )
        self.assertIsNone( self.accumulator.basis )

    def test_same_unit_adds( self ):
        self.accumulator.observe( quantity( 5, "cm" ) )
        self.accumulator.observe( quantity( 3, "cm" ) )

        self.assertEqual( self.accumulator.basis, self.meter )
        self.assertEqual( self.accumulator.checkpoint(), "8 cm" )

    def test_compatible_units_add_in_last_unit( self ):
        self.accumulator.observe( quantity( 1, "m" ) )
        self.accumulator.observe( quantity( 50, "cm" ) )

        self.assertEqual( self.accumulator.checkpoint(), "150 cm" )

    def test_compound_units( self ):
        speed = UnitQuantity( sympy.Integer( 3 ), UNIT_NAMESPACE[ "m" ] / UNIT_NAMESPACE[ "s" ] )
        self.accumulator.observe( speed )

        self.assertEqual( self.accumulator.checkpoint(), "3 m/s" )

    def test_incompatible_unit_resets_both_sums( self ):
        self.accumulator.observe( quantity( 5, "cm" ) )
        self.accumulator.observe( quantity( 2, "kg" ) )

        self.assertEqual( self.accumulator.local_sum, 2 )
        self.assertEqual( self.accumulator.global_sum, 2 )
        self.assertEqual( self.accumulator.basis, self.kilogram )

    def test_number_after_unit_resets_and_clears_basis( self ):
        self.accumulator.observe( quantity( 5, "cm" ) )
        self.accumulator.observe( number( 3 ) )

        self.assertEqual( self.accumulator.local_sum, 3 )
        self.assertEqual( self.accumulator.global_sum, 3 )
        self.assertIsNone( self.accumulator.basis )

    def test_unit_after_number_resets( self ):
        self.accumulator.observe( number( 4 ) )
        self.accumulator.observe( quantity( 1, "m" ) )

        self.assertEqual( self.accumulator.local_sum, 1 )
        self.assertEqual( self.accumulator.global_sum, 1 )
        self.assertEqual( self.accumulator.basis, self.meter )

    def test_checkpoint_resets_local_sum_only( self ):
        self.accumulator.observe( number( 5 ) )
        self.assertEqual( self.accumulator.checkpoint(), "5" )
        self.assertEqual( self.accumulator.local_sum, 0 )
        self.assertEqual( self.accumulator.global_sum, 5 )

        self.accumulator.observe( number( 10 ) )
        self.assertEqual( self.accumulator.checkpoint(), "10" )
        self.assertEqual( self.accumulator.render_global(), "15" )

    def test_checkpoint_keeps_basis( self ):
        self.accumulator.observe( quantity( 5, "cm" ) )

        self.assertEqual( self.accumulator.checkpoint(), "5 cm" )
        self.assertEqual( self.accumulator.checkpoint(), "0 cm" )
        self.assertEqual( self.accumulator.basis, self.meter )

    def test_text_is_ignored( self ):
        self.accumulator.observe( number( 5 ) )
        self.accumulator.observe( Text( "1010" ) )

        self.assertEqual( self.accumulator.local_sum, 5 )

    def test_unsummable_values_leave_state_unchanged( self ):
        self.accumulator.observe( number( 5 ) )
        before = self.accumulator.state

        for value in ( Number( sympy.I ), Number( sympy.oo ) ):
            with self.subTest( value=value ):
                with self.assertRaises( AggregationError ):
                    self.accumulator.observe( value )
                self.assertEqual( self.accumulator.state, before )

    def test_precision_applies_to_rendering( self ):
        accumulator = SumAccumulator( precision=4 )
        accumulator.observe( Number( sympy.Rational( 1, 3 ) ) )

        self.assertEqual( accumulator.checkpoint(), "0.3333" )


if __name__ == "__main__":
    unittest.main()
