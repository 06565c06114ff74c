#!/usr/bin/env python3
"""
Expression environment: one evaluator session with accumulated bindings.

Wraps sympy's parse_expr. A session lives for exactly one pass over a
buffer; it is created fresh, receives the base conversion functions once,
and is discarded when the pass ends. Nothing here is module-level mutable
state.
"""

import io
import keyword
import logging
import re
import tokenize
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import sympy
from sympy.core.function import AppliedUndef
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication,
    parse_expr,
    rationalize,
    standard_transformations,
)
from sympy.physics.units import Quantity, convert_to

from livecalc.base_extension import build_conversion_functions, preprocess
from livecalc.config import CalcConfig
from livecalc.errors import CalcError, ParseOrEvalError
from livecalc.quantities import UNIT_NAMESPACE, normalize_quantity_sum, unit_atoms

logger = logging.getLogger( __name__ )

TRANSFORMATIONS = standard_transformations + ( convert_xor, rationalize, implicit_multiplication )

# sympy's public names; what parse_expr would import with `from sympy import *`
GLOBAL_NAMESPACE: Dict[str, Any] = { name: getattr( sympy, name ) for name in sympy.__all__ }
GLOBAL_NAMESPACE.update( {
    "max"   : sympy.Max,
    "abs"   : sympy.Abs,
} )

# Calculator spellings that sympy does not provide
CALCULATOR_NAMES: Dict[str, Any] = {
    "e"     : sympy.E,
    "ln"    : sympy.log,
    "log10" : lambda x: sympy.log( x, 10 ),
    "log2"  : lambda x: sympy.log( x, 2 ),
}

_ASSIGNMENT      = re.compile( r"^\s*([A-Za-z_]\w*)\s*=(?!=)(.*)$" )
_UNIT_CONVERSION = re.compile( r"^(.+?)\s+(?:to|in)\s+([A-Za-z_][\w\s*/^()]*?)\s*$" )
_IDENTIFIER      = re.compile( r"[A-Za-z_]\w*" )


def strip_comment( text: str ) -> str:
    """Drop everything from the first '#' on."""
    return text.split( "#", 1 )[ 0 ]


def split_assignment( expression: str ) -> Tuple[Optional[str], str]:
    """
    Split `name = expr` into its parts.

    Ensures:
        - Returns ( None, expression ) when the text is not an assignment
        - `==` comparisons are never mistaken for assignments

    Raises:
        - ParseOrEvalError when assigning to a Python keyword
    """
    match = _ASSIGNMENT.match( expression )
    if match is None:
        return None, expression

    name = match.group( 1 )
    if keyword.iskeyword( name ):
        raise ParseOrEvalError( f"Cannot assign to reserved word '{name}'" )
    return name, match.group( 2 )


class ExpressionEnvironment:
    """
    A persistent evaluator session for one pass.

    Requires:
        - config is the CalcConfig of the pass

    Ensures:
        - Conversion functions are registered once, at construction
        - A successful assignment rebinds its name for every later evaluation
        - A failed evaluation leaves bindings and history untouched
    """

    def __init__( self, config: CalcConfig ) -> None:
        self.config     = config
        self._functions = build_conversion_functions( config )
        self._bindings  : Dict[str, Any] = { }
        self._inputs    : List[str]      = [ ]
        self._results   : List[Any]      = [ ]

    @property
    def bindings( self ) -> Mapping[str, Any]:
        return MappingProxyType( self._bindings )

    @property
    def inputs( self ) -> Tuple[str, ...]:
        return tuple( self._inputs )

    def evaluate( self, text: str ) -> Any:
        """
        Evaluate one line of text and record it in the session history.

        Requires:
            - text is a single line (may be blank, may carry a # comment)

        Ensures:
            - Returns None for blank or comment-only text
            - Returns the assigned value for `name = expr`
            - On success text is appended to inputs and its result becomes current()

        Raises:
            - ParseOrEvalError for malformed or undefined expressions
            - UnitError / FractionError from base conversions
        """
        result = self._evaluate_one( text )
        self._inputs.append( text )
        self._results.append( result )
        return result

    def evaluate_sequence( self, texts: Sequence[str] ) -> List[Any]:
        """
        Evaluate texts in order against this session and return every result.

        Re-running the session's own inputs rebinds the same names to the
        same values, so evaluate_sequence( inputs )[ -1 ] == current().

        Raises:
            - The first CalcError encountered; bindings made before it are kept
        """
        return [ self._evaluate_one( text ) for text in texts ]

    def current( self ) -> Any:
        """Result of the most recent successful evaluate() call, or None."""
        return self._results[ -1 ] if self._results else None

    def _evaluate_one( self, text: str ) -> Any:
        expression = strip_comment( text )
        if not expression.strip():
            return None

        name, expression = split_assignment( expression )
        if not expression.strip():
            raise ParseOrEvalError( "Unexpected end of expression" )

        result = self._evaluate_expression( expression )
        if name is not None:
            self._bindings[ name ] = result
        return result

    def _evaluate_expression( self, expression: str ) -> Any:
        if "__" in expression:
            raise ParseOrEvalError( "Invalid expression" )

        rewritten = preprocess( expression )
        if rewritten != expression:
            logger.debug( f"Rewrote [{expression.strip()}] as [{rewritten.strip()}]" )

        rewritten, target = self._split_unit_conversion( rewritten )
        self._check_names( rewritten )
        result = self._parse( rewritten )
        self._check_defined( result )
        self._check_finite( result )
        result = normalize_quantity_sum( result )

        if target is not None:
            result = self._convert_units( result, target )
        return result

    def _namespace( self ) -> Dict[str, Any]:
        namespace = dict( UNIT_NAMESPACE )
        namespace.update( CALCULATOR_NAMES )
        namespace.update( self._functions )
        namespace.update( self._bindings )
        return namespace

    def _parse( self, expression: str ) -> Any:
        try:
            return parse_expr( expression.strip(), local_dict=self._namespace(), global_dict=GLOBAL_NAMESPACE, transformations=TRANSFORMATIONS )
        except CalcError:
            raise
        except tokenize.TokenError as e:
            raise ParseOrEvalError( "Unexpected end of expression" ) from e
        except SyntaxError as e:
            raise ParseOrEvalError( f"Syntax error: {e.msg}" ) from e
        except Exception as e:
            raise ParseOrEvalError( str( e ) or type( e ).__name__ ) from e

    def _check_names( self, expression: str ) -> None:
        """
        Reject names that resolve to nothing, before sympy can cancel them out.

        `foo - foo` and `0 * foo` simplify to 0, so the result alone cannot
        tell whether every name was defined.

        Raises:
            - ParseOrEvalError( "Undefined symbol <name>" | "Undefined function <name>" )
        """
        try:
            tokens = list( tokenize.generate_tokens( io.StringIO( expression.strip() ).readline ) )
        except ( tokenize.TokenError, SyntaxError ):
            # malformed text; _parse reports the syntax error
            return

        namespace = self._namespace()
        for index, token in enumerate( tokens ):
            if token.type != tokenize.NAME or keyword.iskeyword( token.string ):
                continue
            if index > 0 and tokens[ index - 1 ].string == ".":
                continue
            if token.string in namespace or token.string in GLOBAL_NAMESPACE:
                continue

            is_call = index + 1 < len( tokens ) and tokens[ index + 1 ].string == "("
            raise ParseOrEvalError( f"Undefined {'function' if is_call else 'symbol'} {token.string}" )

    def _check_finite( self, result: Any ) -> None:
        # 1/0 and log(0) give zoo, 0/0 gives nan; neither can be shown or summed
        if isinstance( result, sympy.Basic ) and result.has( sympy.nan, sympy.zoo ):
            raise ParseOrEvalError( "Result is undefined (division by zero?)" )

    def _check_defined( self, result: Any ) -> None:
        if not isinstance( result, sympy.Basic ):
            return

        undefined_functions = sorted( str( f.func ) for f in result.atoms( AppliedUndef ) )
        if undefined_functions:
            raise ParseOrEvalError( f"Undefined function {undefined_functions[ 0 ]}" )

        # Quantities carry Symbol args (name, abbrev) that are not free variables
        without_units = result.xreplace( { q: sympy.S.One for q in result.atoms( Quantity ) } )
        undefined     = sorted( str( s ) for s in getattr( without_units, "free_symbols", set() ) )
        if undefined:
            raise ParseOrEvalError( f"Undefined symbol {undefined[ 0 ]}" )

    def _split_unit_conversion( self, expression: str ) -> Tuple[str, Optional[Any]]:
        match = _UNIT_CONVERSION.match( expression.strip() )
        if match is None:
            return expression, None

        target_text = match.group( 2 )
        names       = _IDENTIFIER.findall( target_text )
        if not names or any( n not in UNIT_NAMESPACE or n in self._bindings for n in names ):
            return expression, None

        target = self._parse( target_text )
        return match.group( 1 ), target

    def _convert_units( self, result: Any, target: Any ) -> Any:
        if not isinstance( result, sympy.Expr ) or not result.has( Quantity ):
            raise ParseOrEvalError( "Units do not match" )

        target_units = unit_atoms( target )
        converted    = convert_to( result, target_units )
        if not converted.atoms( Quantity ) <= set( target_units ):
            raise ParseOrEvalError( "Units do not match" )
        return converted


def quick_smoke_test():
    """Quick smoke test for the expression environment."""

    environment = ExpressionEnvironment( CalcConfig() )

    print( "Testing assignments..." )
    environment.evaluate( "A = 2" )
    environment.evaluate( "B = A * 3" )
    assert environment.evaluate( "B" ) == 6
    print( "✓ bindings carry across lines" )

    print( "Testing base rewriting..." )
    assert environment.evaluate( "0xff + 1" ) == 256
    assert environment.evaluate( "10 to bin" ) == "1010"
    print( "✓ base literals and conversions work" )

    print( "Testing re-derivation..." )
    assert environment.evaluate_sequence( environment.inputs )[ -1 ] == environment.current()
    print( "✓ evaluate_sequence is consistent with current()" )


if __name__ == "__main__":
    quick_smoke_test()
