#!/usr/bin/env python3
"""
Output formatting for a pass: one rendered text line per LineOutcome.

Two strategies share the same hooks (spacing, value_line, sum_line,
error_line, empty_line):

    ScreenFormatter - overlay markup for the host UI (HTML-escaped, spans for sums and errors)
    ExportFormatter - plain text, results prefixed with "# ", errors suppressed
"""

import html
from typing import List, Sequence

from livecalc.config import CalcConfig
from livecalc.outcomes import LineOutcome, OutcomeKind

EXPORT_COMMENT_PREFIX = "# "


def max_line_length( outcomes: Sequence[LineOutcome] ) -> int:
    """Length of the longest raw line; computed once per pass."""
    return max( ( len( outcome.line ) for outcome in outcomes ), default=0 )


class ScreenFormatter:
    """
    Renders outcomes as overlay markup for the text widget.

    Requires:
        - max_length is the length of the longest raw line of the pass

    Ensures:
        - Every rendered line ends with a newline
        - Errors are only annotated when config.show_errors is set
    """

    def __init__( self, config: CalcConfig, max_length: int = 0 ) -> None:
        self.config     = config
        self.max_length = max_length

    def text( self, line: str ) -> str:
        return html.escape( line, quote=False )

    def spacing( self, line: str ) -> str:
        if self.config.align_to_max_length:
            return " " * max( 1, self.max_length - len( line ) + 2 )
        return "\t"

    def value_line( self, line: str, rendered: str ) -> str:
        return f"{self.text( line )}{self.spacing( line )}{self.text( rendered )}\n"

    def sum_line( self, line: str, subtotal: str ) -> str:
        return f'{self.text( line )}{self.spacing( line )}<span class="sum-value">{self.text( subtotal )}</span>\n'

    def error_line( self, line: str, message: str ) -> str:
        return f'{self.text( line )} <span class="error-text">&lt;{self.text( message )}&gt;</span>\n'

    def empty_line( self, line: str ) -> str:
        return f"{self.text( line )}\n"

    def format( self, outcome: LineOutcome ) -> str:
        """
        Dispatch one outcome to its hook.

        Raises:
            - ValueError for an unknown outcome kind
        """
        kind = outcome.kind

        if kind is OutcomeKind.BLANK:
            return self.empty_line( outcome.line )
        elif kind is OutcomeKind.VALUE:
            return self.value_line( outcome.line, outcome.rendered )
        elif kind is OutcomeKind.CHECKPOINT:
            return self.sum_line( outcome.line, outcome.subtotal )
        elif kind is OutcomeKind.ERROR:
            if self.config.show_errors:
                return self.error_line( outcome.line, outcome.message )
            return self.empty_line( outcome.line )
        else:
            raise ValueError( f"Unknown outcome kind '{kind}'" )


class ExportFormatter( ScreenFormatter ):
    """
    Plain-text export: `<line><spacing># <result>`; error text never appears.
    """

    def text( self, line: str ) -> str:
        return line

    def value_line( self, line: str, rendered: str ) -> str:
        return f"{line}{self.spacing( line )}{EXPORT_COMMENT_PREFIX}{rendered}\n"

    def sum_line( self, line: str, subtotal: str ) -> str:
        return f"{line}{self.spacing( line )}{EXPORT_COMMENT_PREFIX}{subtotal}\n"

    def error_line( self, line: str, message: str ) -> str:
        return f"{line}\n"


def render_outcomes( outcomes: Sequence[LineOutcome], formatter: ScreenFormatter ) -> List[str]:
    """Render every outcome with formatter, in order."""
    return [ formatter.format( outcome ) for outcome in outcomes ]
