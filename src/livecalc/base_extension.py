#!/usr/bin/env python3
"""
Numeric base support layered on top of the expression grammar.

Two parts:
    - Conversion functions registered into every expression environment:
      to_hex/to_bin/to_oct/to_dec and from_hex/from_bin/from_oct
    - A text preprocessing pass that rewrites base literals (0xff) and
      natural-language phrases ("10 to bin") into calls of those functions

Rewrites run in a fixed order: decimal commas (whole buffer), literals,
then conversion phrases. Conversion phrases are rewritten with the keyword
as the outer loop and the base as the inner loop; later rewrites see the
text produced by earlier ones.
"""

import re
from dataclasses import dataclass
from decimal import Context, Decimal, ROUND_HALF_EVEN
from typing import Any, Callable, Dict, Optional

import sympy

from livecalc.config import CalcConfig
from livecalc.errors import BaseConversionError, FractionError, ParseOrEvalError, UnitError
from livecalc.quantities import Number, Text, UnitQuantity, classify


@dataclass( frozen=True )
class BaseDescriptor:
    """
    A numeric base known to the calculator.

    Requires:
        - radix is one of 2, 8, 10, 16
        - prefix is empty only for the decimal base

    Ensures:
        - format_spec is the str.format type letter for non-decimal bases
    """

    name        : str
    radix       : int
    prefix      : str
    format_spec : str = ""

    @property
    def is_decimal( self ) -> bool:
        return self.radix == 10


# Order matters: literal rewriting and phrase rewriting iterate in this order
BASES: Dict[str, BaseDescriptor] = {
    "hex" : BaseDescriptor( "hex", 16, "0x", "x" ),
    "bin" : BaseDescriptor( "bin",  2, "0b", "b" ),
    "oct" : BaseDescriptor( "oct",  8, "0o", "o" ),
    "dec" : BaseDescriptor( "dec", 10, "" ),
}

CONVERSION_KEYWORDS = ( "in", "to" )

_DECIMAL_COMMA = re.compile( r"(\d+),(\d+)" )


def _literal_pattern( base: BaseDescriptor ) -> "re.Pattern[str]":
    # not inside an identifier, a decimal number or a string literal
    return re.compile( rf"(?<![\w.\"']){re.escape( base.prefix )}([0-9a-f]+)", re.IGNORECASE )


def _phrase_pattern( keyword: str, base: BaseDescriptor ) -> "re.Pattern[str]":
    return re.compile( rf"(.+?)\s+{keyword}\s+{base.name}(?:\b|$)", re.IGNORECASE )


_LITERAL_PATTERNS = { name: _literal_pattern( base ) for name, base in BASES.items() if not base.is_decimal }
_PHRASE_PATTERNS  = [ ( keyword, base, _phrase_pattern( keyword, base ) ) for keyword in CONVERSION_KEYWORDS for base in BASES.values() ]


# =============================================================================
# Text preprocessing
# =============================================================================

def normalize_decimal_commas( buffer: str ) -> str:
    """
    Treat commas as decimal separators when that is unambiguous for the whole buffer.

    Ensures:
        - If the buffer contains a comma and no period, every <digits>,<digits> becomes <digits>.<digits>
        - Otherwise the buffer is returned unchanged
    """
    if "," in buffer and "." not in buffer:
        return _DECIMAL_COMMA.sub( r"\1.\2", buffer )
    return buffer


def rewrite_literals( expr: str ) -> str:
    """
    Replace prefixed base literals with from_<base>( "<digits>" ) calls.

    Examples:
        "0xff + 1"  → 'from_hex("ff") + 1'
        "0B101"     → 'from_bin("101")'
    """
    for name, pattern in _LITERAL_PATTERNS.items():
        expr = pattern.sub( lambda match, name=name: f'from_{name}("{match.group( 1 )}")', expr )
    return expr


def rewrite_conversions( expr: str ) -> str:
    """
    Replace "<fragment> to|in <base>" with to_<base>( <fragment> ).

    Requires:
        - expr is a single expression line

    Ensures:
        - A phrase is rewritten only when its fragment is non-empty after trimming
        - Keywords form the outer loop, bases the inner loop
    """
    def replace( match: "re.Match[str]", base: BaseDescriptor ) -> str:
        fragment = match.group( 1 )
        if fragment.strip():
            return f"to_{base.name}({fragment})"
        return match.group( 0 )

    for _, base, pattern in _PHRASE_PATTERNS:
        expr = pattern.sub( lambda match, base=base: replace( match, base ), expr )
    return expr


def preprocess( expr: str ) -> str:
    """Literal rewriting followed by conversion-phrase rewriting."""
    return rewrite_conversions( rewrite_literals( expr ) )


def find_conversion( text: str ) -> Optional[BaseDescriptor]:
    """
    First base named by a conversion phrase in text, in rewrite order.

    Ensures:
        - Returns None when no phrase with a non-empty fragment is present
    """
    for _, base, pattern in _PHRASE_PATTERNS:
        for match in pattern.finditer( text ):
            if match.group( 1 ).strip():
                return base
    return None


# =============================================================================
# Conversion functions
# =============================================================================

def to_base( base: BaseDescriptor, value: Any, config: CalcConfig ) -> str:
    """
    Render a unitless value in the notation of `base`.

    Requires:
        - value is a number (sympy or Python), never a quantity

    Ensures:
        - Lower-case digits, no prefix
        - Decimal output uses fixed notation with config.precision significant digits

    Raises:
        - UnitError if value carries a physical unit
        - FractionError if base is not decimal and value is not an integer
        - BaseConversionError for text, complex, infinite or undefined input
    """
    classified = classify( value )

    if isinstance( classified, UnitQuantity ):
        raise UnitError()
    if not isinstance( classified, Number ):
        text = classified.text if isinstance( classified, Text ) else classified
        raise BaseConversionError( f"Can't convert '{text}' to {base.name}" )

    magnitude = classified.magnitude
    if magnitude.has( sympy.nan ) or magnitude.is_finite is False:
        raise BaseConversionError( f"Can't convert infinite or undefined numbers to {base.name}" )
    if magnitude.is_extended_real is False:
        raise BaseConversionError( f"Can't convert complex numbers to {base.name}" )

    if base.is_decimal:
        return _format_fixed( magnitude, config.precision )

    integer = as_integer( magnitude, config )
    if integer is None:
        raise FractionError( base.name )

    return format( integer, base.format_spec )


def from_base( base: BaseDescriptor, text: Any ) -> sympy.Integer:
    """
    Parse digits written in `base` into an Integer.

    Requires:
        - text is the digit string, optionally carrying the base prefix (any case)

    Raises:
        - ParseOrEvalError when the digits are not valid in base.radix
    """
    digits = str( text ).strip().lower()
    if base.prefix and digits.startswith( base.prefix ):
        digits = digits[ len( base.prefix ): ]

    try:
        return sympy.Integer( int( digits, base.radix ) )
    except ValueError as e:
        raise ParseOrEvalError( f"Invalid {base.name} literal '{text}'" ) from e


def as_integer( magnitude: sympy.Expr, config: CalcConfig ) -> Optional[int]:
    """
    The integer nearest to magnitude, if magnitude is an integer within tolerance.

    Ensures:
        - Exact Integers convert directly, exact non-integral Rationals return None
        - Inexact values are accepted within max( relative_tolerance * |x|, absolute_tolerance )
    """
    if magnitude.is_Integer:
        return int( magnitude )
    if magnitude.is_Rational:
        return None

    numeric = magnitude.evalf( config.precision + 5 )
    if not numeric.is_Number or numeric.is_infinite or numeric is sympy.nan:
        return None

    decimal   = Decimal( str( numeric ) )
    nearest   = decimal.to_integral_value()
    tolerance = max( config.relative_tolerance * abs( decimal ), config.absolute_tolerance )
    if abs( decimal - nearest ) <= tolerance:
        return int( nearest )
    return None


def _format_fixed( magnitude: sympy.Expr, precision: int ) -> str:
    if magnitude.is_Integer:
        return str( int( magnitude ) )

    context = Context( prec=precision, rounding=ROUND_HALF_EVEN )
    decimal = context.plus( Decimal( str( magnitude.evalf( precision ) ) ) )
    if decimal.is_zero():
        return "0"
    return format( decimal.normalize( context ), "f" )


def build_conversion_functions( config: CalcConfig ) -> Dict[str, Callable[..., Any]]:
    """
    Callables to register into an expression environment's namespace.

    Ensures:
        - to_<base> for every base, from_<base> for every non-decimal base
        - Each callable is bound to config (precision and tolerances)
    """
    functions: Dict[str, Callable[..., Any]] = { }

    for base in BASES.values():
        def to_fn( value, base=base ):
            return to_base( base, value, config )
        to_fn.__name__ = f"to_{base.name}"
        functions[ to_fn.__name__ ] = to_fn

        if base.is_decimal:
            continue

        def from_fn( text, base=base ):
            return from_base( base, text )
        from_fn.__name__ = f"from_{base.name}"
        functions[ from_fn.__name__ ] = from_fn

    return functions


def quick_smoke_test():
    """Quick smoke test for base literals and conversions."""

    print( "Testing rewrites..." )
    assert rewrite_literals( "0xff + 1" ) == 'from_hex("ff") + 1'
    assert rewrite_conversions( "10 to bin" ) == "to_bin(10)"
    assert rewrite_conversions( " to hex" ) == " to hex"
    assert normalize_decimal_commas( "1,5 + 2,25" ) == "1.5 + 2.25"
    print( "✓ rewrites work" )

    print( "Testing conversions..." )
    config = CalcConfig()
    assert to_base( BASES[ "bin" ], sympy.Integer( 10 ), config ) == "1010"
    assert from_base( BASES[ "hex" ], "0xFF" ) == 255
    try:
        to_base( BASES[ "hex" ], sympy.Rational( 7, 2 ), config )
        raise AssertionError( "expected FractionError" )
    except FractionError:
        pass
    print( "✓ conversions work" )


if __name__ == "__main__":
    quick_smoke_test()
