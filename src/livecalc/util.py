import sys
from typing import TextIO


def print_banner( msg: str, prepend_nl: bool = False, end: str = "\n\n", width: int = 80, stream: TextIO = None ) -> None:
    """
    Print a message between two horizontal bars.

    Requires:
        - msg is a string, possibly multi-line

    Ensures:
        - Bars are at least `width` wide and never shorter than the longest message line + 2
        - Prepends a newline if prepend_nl=True
    """
    stream = stream or sys.stdout
    if prepend_nl: print( file=stream )

    bar_len = max( [ len( line ) for line in msg.split( "\n" ) ] + [ width - 2 ] ) + 2
    bar_str = "-" * bar_len

    print( bar_str, file=stream )
    print( "-", msg, file=stream )
    print( bar_str, end=end, file=stream )


def read_buffer( path: str ) -> str:
    """
    Read a notepad buffer from a file, or from stdin when path is None or "-".

    Ensures:
        - Returns the text with its line endings preserved
        - Decodes files as UTF-8
    """
    if path is None or path == "-":
        return sys.stdin.read()

    with open( path, "r", encoding="utf-8", newline="" ) as f:
        return f.read()
