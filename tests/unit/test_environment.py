"""
Unit tests for ExpressionEnvironment, the per-pass evaluator session.

Tests the expression environment including:
- Comment stripping and assignment splitting
- Bindings carried across evaluate() calls and isolated between sessions
- Unit arithmetic, sum normalization and "to <unit>" conversion
- Base literals and conversion phrases inside expressions
- Error wrapping into the CalcError hierarchy
"""

import unittest

import sympy

from livecalc.config import CalcConfig
from livecalc.environment import ExpressionEnvironment, split_assignment, strip_comment
from livecalc.errors import FractionError, ParseOrEvalError, UnitError
from livecalc.quantities import UNIT_NAMESPACE, Text, classify, render_value


class TestLineHelpers( unittest.TestCase ):
    """Tests for comment and assignment handling."""

    def test_strip_comment( self ):
        self.assertEqual( strip_comment( "5 # note" ), "5 " )
        self.assertEqual( strip_comment( "# only a comment" ), "" )
        self.assertEqual( strip_comment( "5 + 3" ), "5 + 3" )

    def test_split_assignment( self ):
        self.assertEqual( split_assignment( "x = 3" ), ( "x", " 3" ) )
        self.assertEqual( split_assignment( "x == 3" ), ( None, "x == 3" ) )
        self.assertEqual( split_assignment( "5 + 3" ), ( None, "5 + 3" ) )

    def test_split_assignment_rejects_keywords( self ):
        with self.assertRaises( ParseOrEvalError ):
            split_assignment( "if = 3" )


class TestExpressionEnvironment( unittest.TestCase ):
    """
    Tests for evaluation against accumulated bindings.

    Requires:
        - A fresh ExpressionEnvironment per test

    Ensures:
        - Successful assignments are visible to later lines
        - Failures raise CalcError subclasses and leave the session untouched
    """

    def setUp( self ):
        self.environment = ExpressionEnvironment( CalcConfig() )
        self.cm          = UNIT_NAMESPACE[ "cm" ]

    def render( self, result ):
        return render_value( classify( result ), 18 )

    def test_assignments_carry_across_lines( self ):
        self.assertEqual( self.environment.evaluate( "A = 2" ), 2 )
        self.assertEqual( self.environment.evaluate( "B = A * 3" ), 6 )
        self.assertEqual( self.environment.evaluate( "B" ), 6 )
        self.assertEqual( dict( self.environment.bindings ), { "A": 2, "B": 6 } )

    def test_bindings_are_read_only( self ):
        self.environment.evaluate( "x = 1" )
        with self.assertRaises( TypeError ):
            self.environment.bindings[ "x" ] = 2

    def test_sessions_do_not_share_bindings( self ):
        self.environment.evaluate( "x = 1" )
        other = ExpressionEnvironment( CalcConfig() )

        with self.assertRaises( ParseOrEvalError ):
            other.evaluate( "x + 1" )

    def test_blank_and_comment_lines_have_no_value( self ):
        self.assertIsNone( self.environment.evaluate( "" ) )
        self.assertIsNone( self.environment.evaluate( "   " ) )
        self.assertIsNone( self.environment.evaluate( "# groceries" ) )

    def test_arithmetic( self ):
        self.assertEqual( self.environment.evaluate( "2 ^ 10" ), 1024 )
        self.assertEqual( self.environment.evaluate( "0.1 + 0.2" ), sympy.Rational( 3, 10 ) )
        self.assertEqual( self.environment.evaluate( "ln(e)" ), 1 )
        self.assertEqual( self.environment.evaluate( "max(3, 7)" ), 7 )

    def test_comparison_yields_boolean_text( self ):
        self.assertEqual( classify( self.environment.evaluate( "3 > 2" ) ), Text( "true" ) )

    def test_undefined_symbol( self ):
        with self.assertRaises( ParseOrEvalError ) as context:
            self.environment.evaluate( "undefined_name + 1" )
        self.assertEqual( context.exception.message, "Undefined symbol undefined_name" )

    def test_undefined_function( self ):
        with self.assertRaises( ParseOrEvalError ) as context:
            self.environment.evaluate( "foo(3)" )
        self.assertEqual( context.exception.message, "Undefined function foo" )

    def test_undefined_symbol_that_cancels_out( self ):
        for expression in [ "foo - foo", "0 * foo", "x = foo - foo" ]:
            with self.subTest( expression=expression ):
                with self.assertRaises( ParseOrEvalError ) as context:
                    self.environment.evaluate( expression )
                self.assertEqual( context.exception.message, "Undefined symbol foo" )
        self.assertNotIn( "x", self.environment.bindings )

    def test_undefined_results_are_errors( self ):
        """
        Requires:
            - Expressions whose value is complex infinity or nan

        Ensures:
            - ParseOrEvalError is raised and no binding is made
        """
        for expression in [ "1/0", "0/0", "log(0)", "zoo", "x = 1/0" ]:
            with self.subTest( expression=expression ):
                with self.assertRaises( ParseOrEvalError ) as context:
                    self.environment.evaluate( expression )
                self.assertEqual( context.exception.message, "Result is undefined (division by zero?)" )
        self.assertNotIn( "x", self.environment.bindings )

    def test_real_infinity_renders( self ):
        self.assertEqual( self.render( self.environment.evaluate( "oo" ) ), "Infinity" )

    def test_min_is_minutes( self ):
        self.assertEqual( self.render( self.environment.evaluate( "5 min" ) ), "5 min" )
        self.assertEqual( self.render( self.environment.evaluate( "2 h to min" ) ), "120 min" )
        self.assertEqual( self.environment.evaluate( "Min(3, 7)" ), 3 )

    def test_zero_quantity_folds_to_number( self ):
        self.assertEqual( self.render( self.environment.evaluate( "0 m" ) ), "0" )

    def test_syntax_error( self ):
        with self.assertRaises( ParseOrEvalError ):
            self.environment.evaluate( "1 +" )
        with self.assertRaises( ParseOrEvalError ):
            self.environment.evaluate( "x =" )

    def test_dunder_access_rejected( self ):
        with self.assertRaises( ParseOrEvalError ):
            self.environment.evaluate( "__import__('os')" )

    def test_failure_leaves_session_untouched( self ):
        self.environment.evaluate( "a = 1" )

        with self.assertRaises( ParseOrEvalError ):
            self.environment.evaluate( "b = 1 +" )

        self.assertNotIn( "b", self.environment.bindings )
        self.assertEqual( self.environment.inputs, ( "a = 1", ) )
        self.assertEqual( self.environment.current(), 1 )

    def test_current_and_evaluate_sequence_agree( self ):
        self.assertIsNone( self.environment.current() )

        for text in ( "a = 4", "b = a ^ 2", "b - 1" ):
            self.environment.evaluate( text )

        self.assertEqual( self.environment.current(), 15 )
        self.assertEqual( self.environment.evaluate_sequence( self.environment.inputs )[ -1 ], self.environment.current() )
        self.assertEqual( self.environment.bindings[ "b" ], 16 )

    def test_binding_shadows_unit_name( self ):
        self.environment.evaluate( "m = 3" )
        self.assertEqual( self.environment.evaluate( "m * 2" ), 6 )

    def test_unit_sum( self ):
        self.assertEqual( self.environment.evaluate( "5 cm + 3 cm" ), 8 * self.cm )

    def test_mixed_unit_sum_uses_finest_unit( self ):
        self.assertEqual( self.render( self.environment.evaluate( "5 cm + 2 m" ) ), "205 cm" )

    def test_incompatible_units( self ):
        for text in ( "5 cm + 3 kg", "5 cm + 3" ):
            with self.subTest( text=text ):
                with self.assertRaises( ParseOrEvalError ) as context:
                    self.environment.evaluate( text )
                self.assertEqual( context.exception.message, "Units do not match" )

    def test_unit_conversion_phrase( self ):
        self.assertEqual( self.environment.evaluate( "2 m to cm" ), 200 * self.cm )

        with self.assertRaises( ParseOrEvalError ):
            self.environment.evaluate( "2 kg to cm" )

    def test_base_literals_and_phrases( self ):
        self.assertEqual( self.environment.evaluate( "0xff + 1" ), 256 )
        self.assertEqual( self.environment.evaluate( "10 to bin" ), "1010" )
        self.assertEqual( self.environment.evaluate( "0b1010 to hex" ), "a" )

    def test_base_conversion_guards_propagate( self ):
        with self.assertRaises( FractionError ):
            self.environment.evaluate( "3.5 to hex" )
        with self.assertRaises( UnitError ):
            self.environment.evaluate( "5 cm to hex" )


if __name__ == "__main__":
    unittest.main()
