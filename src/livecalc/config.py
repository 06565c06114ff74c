#!/usr/bin/env python3
"""
Configuration for the livecalc evaluation engine.

Design decisions:
- One immutable CalcConfig per pass; a pass never sees a config change halfway
- Tolerances are derived from precision, never configured separately
- Precision is bounded to 1..64 significant digits
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

MIN_PRECISION     = 1
MAX_PRECISION     = 64
DEFAULT_PRECISION = 18


class CalcConfig( BaseModel ):
    """
    Settings read at the start of a pass and held fixed for its duration.

    Requires:
        - precision is an int in [MIN_PRECISION, MAX_PRECISION]

    Ensures:
        - Instances are immutable (frozen) so they can be shared between passes
        - relative_tolerance and absolute_tolerance follow precision
    """

    model_config = ConfigDict( frozen=True, extra="forbid" )

    precision           : int  = Field( default=DEFAULT_PRECISION, ge=MIN_PRECISION, le=MAX_PRECISION, description="Significant digits used when rendering results" )
    show_errors         : bool = Field( default=False, description="Annotate failing lines with their error message in screen mode" )
    align_to_max_length : bool = Field( default=False, description="Pad results to a common column instead of a tab" )

    @property
    def relative_tolerance( self ) -> Decimal:
        """Returns 10^-(precision - 4)."""
        return Decimal( 10 ) ** -( self.precision - 4 )

    @property
    def absolute_tolerance( self ) -> Decimal:
        """Returns 10^-(precision - 1)."""
        return Decimal( 10 ) ** -( self.precision - 1 )

    def with_precision( self, precision: int ) -> "CalcConfig":
        """
        Copy of this config with a new precision, clamped into the valid range.

        Ensures:
            - Never raises for out-of-range input (mirrors the +/- precision buttons)
        """
        clamped = max( MIN_PRECISION, min( MAX_PRECISION, int( precision ) ) )
        return self.model_copy( update={ "precision": clamped } )
