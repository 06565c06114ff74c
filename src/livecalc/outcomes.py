"""
Per-line outcomes of a pass.

One outcome per buffer line, in buffer order. Every outcome carries the raw
line so formatters never need the buffer itself.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

from livecalc.errors import CalcError


class OutcomeKind( Enum ):
    """Tag of the LineOutcome variant."""
    BLANK      = "blank"
    VALUE      = "value"
    ERROR      = "error"
    CHECKPOINT = "checkpoint"


@dataclass( frozen=True )
class BlankOutcome:
    line : str
    kind : OutcomeKind = field( default=OutcomeKind.BLANK, init=False )


@dataclass( frozen=True )
class ValueOutcome:
    line     : str
    value    : Any
    rendered : str
    kind     : OutcomeKind = field( default=OutcomeKind.VALUE, init=False )


@dataclass( frozen=True )
class ErrorOutcome:
    line    : str
    message : str
    error   : Optional[CalcError] = field( default=None, compare=False )
    kind    : OutcomeKind         = field( default=OutcomeKind.ERROR, init=False )


@dataclass( frozen=True )
class CheckpointOutcome:
    line     : str
    subtotal : str
    kind     : OutcomeKind = field( default=OutcomeKind.CHECKPOINT, init=False )


LineOutcome = Union[ BlankOutcome, ValueOutcome, ErrorOutcome, CheckpointOutcome ]


@dataclass
class PassResult:
    """
    Everything one pass over a buffer produced.

    Ensures:
        - len( outcomes ) equals the number of buffer lines
        - global_total is the rendered global running sum at the end of the pass
    """

    outcomes     : List[LineOutcome]
    global_total : str = "0"

    @property
    def error_count( self ) -> int:
        return sum( 1 for outcome in self.outcomes if outcome.kind is OutcomeKind.ERROR )
