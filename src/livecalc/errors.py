from typing import Optional

class CalcError( Exception ):
    """
    Base exception for everything that can go wrong while evaluating one line.

    Requires:
        - message is a human readable description

    Ensures:
        - message is available as an attribute and as str( error )
        - line is the raw line text when known, else None
    """

    def __init__( self, message: str, line: Optional[str] = None ):
        super().__init__( message )
        self.message = message
        self.line    = line

class ParseOrEvalError( CalcError ):
    """
    Malformed or undefined expression on a line.

    Used for:
        - Tokenizer and syntax errors
        - Undefined symbols and functions
        - Arithmetic failures inside the evaluator (mismatched units, bad literals)
    """
    pass

class BaseConversionError( CalcError ):
    """
    Parent of the errors raised by the to_<base> conversion functions.
    """
    pass

class UnitError( BaseConversionError ):
    """
    A base conversion was attempted on a value that carries a physical unit.
    """

    def __init__( self, message: str = "Must be unitless", **kwargs ):
        super().__init__( message, **kwargs )

class FractionError( BaseConversionError ):
    """
    A non-decimal base conversion was attempted on a non-integer.

    Requires:
        - base_name is the name of the target base (hex, bin, oct)

    Ensures:
        - message names the target base
    """

    def __init__( self, base_name: str, **kwargs ):
        super().__init__( f"Can't convert fractional numbers to {base_name}", **kwargs )
        self.base_name = base_name

class AggregationError( CalcError ):
    """
    A value could not be folded into the running sums.

    Used for:
        - Non-real magnitudes (complex results)
        - Quantities whose SI reduction fails
    """
    pass
