#!/usr/bin/env python3
"""
Value model and rendering for evaluation results.

Every result coming out of the expression environment is classified into a
small tagged variant so that the accumulator and the display path never
inspect sympy types directly:

    Number       - a dimensionless sympy expression (Integer, Rational, Float, pi, ...)
    UnitQuantity - magnitude times a product of sympy.physics.units Quantity objects
    Text         - anything rendered verbatim (base conversion output, booleans)
"""

from dataclasses import dataclass
from decimal import Context, Decimal, ROUND_HALF_EVEN
from typing import Any, Dict, List, Optional, Tuple, Union

import sympy
from sympy import Add, Expr, Mul, Symbol
from sympy.logic.boolalg import BooleanAtom
from sympy.physics import units as sympy_units
from sympy.physics.units import Quantity, convert_to
from sympy.physics.units import ampere, candela, kelvin, kilogram, meter, mole, second

from livecalc.errors import ParseOrEvalError

SI_BASE_UNITS = [ meter, kilogram, second, ampere, kelvin, mole, candela ]

# Scientific notation outside this decimal exponent window
FIXED_NOTATION_MIN_EXPONENT = -7
FIXED_NOTATION_MAX_EXPONENT = 21

# Calculator spellings missing from sympy.physics.units
UNIT_ALIASES = {
    "min" : sympy_units.minute,
}


def build_unit_namespace() -> Dict[str, Quantity]:
    """
    Map every Quantity exported by sympy.physics.units to its name.

    Ensures:
        - Keys are valid identifiers usable inside expressions (cm, inch, kg, s, ...)
        - Values are sympy Quantity instances
        - UNIT_ALIASES are included (min is minute)
    """
    namespace = { name: obj for name, obj in vars( sympy_units ).items() if isinstance( obj, Quantity ) and name.isidentifier() }
    namespace.update( UNIT_ALIASES )
    return namespace


UNIT_NAMESPACE = build_unit_namespace()


@dataclass( frozen=True )
class Number:
    magnitude: Expr


@dataclass( frozen=True )
class UnitQuantity:
    magnitude: Expr
    unit     : Expr


@dataclass( frozen=True )
class Text:
    text: str


Value = Union[ Number, UnitQuantity, Text ]


def classify( result: Any ) -> Optional[Value]:
    """
    Wrap a raw evaluation result into the Value variant.

    Requires:
        - result is None, a str, a Python number, a sympy Boolean or a sympy Expr

    Ensures:
        - None stays None (the line produced no value)
        - Expressions containing a Quantity become UnitQuantity with the unit split off
        - Booleans become Text( "true" | "false" )
        - Anything else becomes Text( str( result ) )
    """
    if result is None:
        return None
    if isinstance( result, str ):
        return Text( result )
    if isinstance( result, ( bool, BooleanAtom ) ):
        return Text( "true" if bool( result ) else "false" )
    if isinstance( result, ( int, float, Decimal ) ):
        return Number( sympy.sympify( result ) )
    if isinstance( result, Expr ):
        if result.has( Quantity ):
            magnitude, unit = split_quantity( result )
            return UnitQuantity( magnitude, unit )
        return Number( result )

    return Text( str( result ) )


def split_quantity( expr: Expr ) -> Tuple[Expr, Expr]:
    """
    Separate a product into its dimensionless magnitude and its unit part.

    Requires:
        - expr is a product (or power) of numbers and Quantity objects, not a sum

    Ensures:
        - magnitude * unit == expr
        - unit is 1 when expr has no Quantity
    """
    factors   = Mul.make_args( expr )
    magnitude = Mul( *[ f for f in factors if not f.has( Quantity ) ] )
    unit      = Mul( *[ f for f in factors if f.has( Quantity ) ] )
    return magnitude, unit


def unit_atoms( expr: Expr ) -> List[Quantity]:
    """Quantities appearing in expr, in a stable order."""
    return sorted( expr.atoms( Quantity ), key=lambda q: str( q.name ) )


def reduce_to_si( expr: Expr ) -> Expr:
    """Express expr in the seven SI base units."""
    return convert_to( expr, SI_BASE_UNITS )


def normalize_quantity_sum( expr: Any ) -> Any:
    """
    Collapse a sum of quantities into a single term expressed in one unit.

    sympy keeps `5*centimeter + 2*meter` as an Add; a notepad calculator
    shows `205 cm`. The target is the finest unit among the terms.

    Requires:
        - expr is any evaluation result

    Ensures:
        - Non-sums and sums without quantities are returned unchanged
        - Compatible sums come back as a single magnitude * unit term

    Raises:
        - ParseOrEvalError( "Units do not match" ) for incompatible dimensions or unit + bare number
    """
    if not isinstance( expr, Expr ) or not expr.has( Quantity ):
        return expr

    terms = Add.make_args( sympy.expand( expr ) )
    if len( terms ) == 1:
        return expr

    candidates = [ ]
    for term in terms:
        if not term.has( Quantity ):
            raise ParseOrEvalError( "Units do not match" )
        _, unit = split_quantity( term )
        scale, _ = split_quantity( reduce_to_si( unit ) )
        candidates.append( ( scale, str( unit ), unit ) )

    # finest unit first; the unit text breaks ties deterministically
    candidates.sort( key=lambda c: ( float( abs( c[ 0 ] ) ), c[ 1 ] ) )
    target    = candidates[ 0 ][ 2 ]
    converted = convert_to( expr, unit_atoms( target ) )

    if len( Add.make_args( sympy.expand( converted ) ) ) != 1:
        raise ParseOrEvalError( "Units do not match" )

    return converted


def format_number( value: Any, precision: int ) -> str:
    """
    Render a dimensionless value with `precision` significant digits.

    Requires:
        - value is numeric (no free symbols)
        - precision >= 1

    Ensures:
        - Integers that fit in `precision` digits render exactly
        - Trailing zeros are removed
        - Fixed notation inside (1e-7, 1e21), scientific outside (1.5e+25)
        - Complex values render as `a + bi` / `a - bi`

    Raises:
        - ParseOrEvalError for nan and complex infinity (1/0, 0/0, log(0))
    """
    value = sympy.sympify( value )

    if value.is_Integer and len( str( abs( int( value ) ) ) ) <= precision:
        return str( int( value ) )

    numeric = value.evalf( precision )
    if not numeric.is_number:
        raise ParseOrEvalError( f"Cannot render non-numeric value {value}" )

    real, imag = numeric.as_real_imag()
    if any( part.has( sympy.nan, sympy.zoo ) for part in ( numeric, real, imag ) ):
        raise ParseOrEvalError( "Result is undefined (division by zero?)" )

    if imag != 0:
        real_text = _format_real( real, precision )
        imag_text = _format_real( abs( imag ), precision )
        sign      = "-" if imag < 0 else "+"
        if real == 0:
            return f"{'-' if sign == '-' else ''}{imag_text}i"
        return f"{real_text} {sign} {imag_text}i"

    return _format_real( real, precision )


def _format_real( value: Expr, precision: int ) -> str:
    if value.is_infinite:
        return "-Infinity" if value.is_extended_negative else "Infinity"

    context = Context( prec=precision, rounding=ROUND_HALF_EVEN )
    decimal = context.plus( Decimal( str( value ) ) )
    if decimal.is_zero():
        return "0"

    decimal  = decimal.normalize( context )
    exponent = decimal.adjusted()
    if FIXED_NOTATION_MIN_EXPONENT < exponent < FIXED_NOTATION_MAX_EXPONENT:
        return format( decimal, "f" )
    return format( decimal, "e" )


def format_unit( unit: Expr ) -> str:
    """
    Render a unit expression using abbreviations: cm, m/s, kg*m/s^2.
    """
    abbreviated = unit.xreplace( { q: Symbol( str( q.abbrev ) ) for q in unit.atoms( Quantity ) } )
    return str( abbreviated ).replace( "**", "^" )


def render_value( value: Value, precision: int ) -> str:
    """
    Render a classified value for display.

    Requires:
        - value is a Number, UnitQuantity or Text

    Ensures:
        - Number -> format_number
        - UnitQuantity -> "<number> <unit>"
        - Text -> the text unchanged
    """
    if isinstance( value, Text ):
        return value.text
    if isinstance( value, Number ):
        return format_number( value.magnitude, precision )
    if isinstance( value, UnitQuantity ):
        return f"{format_number( value.magnitude, precision )} {format_unit( value.unit )}"

    raise TypeError( f"Unexpected value variant: {type( value ).__name__}" )


def quick_smoke_test():
    """Quick smoke test for the value model."""

    print( "Testing classify..." )
    assert classify( None ) is None
    assert classify( "ff" ) == Text( "ff" )
    assert isinstance( classify( sympy.Integer( 6 ) ), Number )
    quantity = classify( 5 * UNIT_NAMESPACE[ "cm" ] )
    assert isinstance( quantity, UnitQuantity )
    print( "✓ classify works" )

    print( "Testing rendering..." )
    assert format_number( sympy.Integer( 256 ), 18 ) == "256"
    assert format_number( sympy.Rational( 1, 4 ), 18 ) == "0.25"
    assert render_value( quantity, 18 ) == "5 cm"
    print( "✓ rendering works" )

    print( "Testing sum normalization..." )
    total = normalize_quantity_sum( 5 * UNIT_NAMESPACE[ "cm" ] + 2 * UNIT_NAMESPACE[ "m" ] )
    assert render_value( classify( total ), 18 ) == "205 cm"
    print( "✓ normalize_quantity_sum works" )


if __name__ == "__main__":
    quick_smoke_test()
