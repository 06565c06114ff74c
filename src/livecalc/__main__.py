#!/usr/bin/env python3
"""
Command-line entry point for livecalc.

Run with: python -m livecalc

Usage:
    # Annotate a notepad file (export format, results as "# " comments)
    python -m livecalc notes.txt

    # Read from stdin, show the screen overlay markup with errors
    cat notes.txt | python -m livecalc --screen --show-errors

    # Run all module smoke tests
    python -m livecalc --smoke-test
"""

import argparse
import logging
import sys
from typing import List, Optional

from livecalc.config import MAX_PRECISION, MIN_PRECISION
from livecalc.config_loader import get_calc_config

EXIT_OK          = 0
EXIT_USAGE_ERROR = 2

SMOKE_TEST_MODULES = [
    ( "quantities",     "livecalc.quantities" ),
    ( "base_extension", "livecalc.base_extension" ),
    ( "environment",    "livecalc.environment" ),
    ( "accumulator",    "livecalc.accumulator" ),
    ( "engine",         "livecalc.engine" ),
]


def parse_args( argv: Optional[List[str]] = None ) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="livecalc",
        description="Notepad calculator: evaluate every line of a text buffer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m livecalc notes.txt
  python -m livecalc --screen --show-errors --align notes.txt
  echo "0xff + 1" | python -m livecalc
        """
    )

    parser.add_argument( "file", nargs="?", default=None, help="Buffer to evaluate (default: stdin, or '-')" )
    parser.add_argument( "--screen", action="store_true", help="Print screen-mode overlay markup instead of plain export text" )
    parser.add_argument( "--precision", type=int, default=None, help=f"Significant digits ({MIN_PRECISION}-{MAX_PRECISION})" )
    parser.add_argument( "--show-errors", action="store_true", default=None, help="Annotate failing lines with their error (screen mode)" )
    parser.add_argument( "--align", action="store_true", default=None, help="Align results to a common column instead of a tab" )
    parser.add_argument( "--config", type=str, default=None, help="Path to an INI config file (default: ~/.livecalc/config)" )
    parser.add_argument( "--debug", action="store_true", help="Enable debug logging" )
    parser.add_argument( "--smoke-test", action="store_true", help="Run every module's quick_smoke_test() and exit" )

    return parser.parse_args( argv )


def run_all_smoke_tests() -> bool:
    """Run smoke tests for all livecalc modules and print a summary table."""
    from livecalc.util import print_banner

    print_banner( "livecalc - Full Smoke Test Suite", prepend_nl=True )

    results = []

    for name, module_path in SMOKE_TEST_MODULES:
        try:
            print( f"\n{'='*60}" )
            print( f"Running: {name}" )
            print( '='*60 )

            module = __import__( module_path, fromlist=[ "quick_smoke_test" ] )
            module.quick_smoke_test()
            results.append( ( name, "PASSED", None ) )

        except Exception as e:
            results.append( ( name, "FAILED", str( e ) ) )

    print( f"\n{'='*60}" )
    print( "SMOKE TEST SUMMARY" )
    print( '='*60 )

    passed = sum( 1 for _, status, _ in results if status == "PASSED" )
    failed = len( results ) - passed

    for name, status, error in results:
        status_icon = "✓" if status == "PASSED" else "✗"
        print( f"  {status_icon} {name}: {status}" )
        if error:
            print( f"      Error: {error[:60]}" )

    print( f"\nTotal: {passed} passed, {failed} failed out of {len( results )} modules" )

    return failed == 0


def main( argv: Optional[List[str]] = None ) -> int:
    """
    Evaluate a buffer and print its rendering.

    Ensures:
        - Command-line flags override the loaded configuration
        - Returns EXIT_USAGE_ERROR for invalid configuration or unreadable input
    """
    args = parse_args( argv )

    logging.basicConfig(
        level   = logging.DEBUG if args.debug else logging.WARNING,
        format  = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt = "%H:%M:%S",
    )

    if args.smoke_test:
        return EXIT_OK if run_all_smoke_tests() else 1

    try:
        config = get_calc_config( config_path=args.config )
    except ValueError as e:
        print( f"Error: {e}", file=sys.stderr )
        return EXIT_USAGE_ERROR

    overrides = { }
    if args.precision is not None:
        if not MIN_PRECISION <= args.precision <= MAX_PRECISION:
            print( f"Error: --precision must be between {MIN_PRECISION} and {MAX_PRECISION}", file=sys.stderr )
            return EXIT_USAGE_ERROR
        overrides[ "precision" ] = args.precision
    if args.show_errors is not None:
        overrides[ "show_errors" ] = True
    if args.align is not None:
        overrides[ "align_to_max_length" ] = True
    if overrides:
        config = config.model_copy( update=overrides )

    from livecalc.engine import run, run_for_export
    from livecalc.util import read_buffer

    try:
        buffer = read_buffer( args.file )
    except OSError as e:
        print( f"Error: cannot read {args.file}: {e}", file=sys.stderr )
        return EXIT_USAGE_ERROR

    if args.screen:
        sys.stdout.write( "".join( run( buffer, config ) ) )
    else:
        sys.stdout.write( run_for_export( buffer, config ) )

    return EXIT_OK


if __name__ == "__main__":
    sys.exit( main() )
