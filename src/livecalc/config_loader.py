"""
Configuration loader for livecalc.

Resolves a CalcConfig from multiple sources with a defined precedence order:

    1. Environment variables (LIVECALC_PRECISION, LIVECALC_SHOW_ERRORS, LIVECALC_ALIGN_TO_MAX_LENGTH)
    2. INI file (~/.livecalc/config, section [livecalc])
    3. CalcConfig defaults
"""

import logging
import os
from configparser import ConfigParser
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from livecalc.config import CalcConfig

logger = logging.getLogger( __name__ )

SECTION_NAME        = "livecalc"
DEFAULT_CONFIG_PATH = Path.home() / ".livecalc" / "config"

# field name -> ( environment variable, kind )
SETTINGS = {
    "precision"           : ( "LIVECALC_PRECISION",           "int" ),
    "show_errors"         : ( "LIVECALC_SHOW_ERRORS",         "bool" ),
    "align_to_max_length" : ( "LIVECALC_ALIGN_TO_MAX_LENGTH", "bool" ),
}


def get_calc_config( config_path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None ) -> CalcConfig:
    """
    Load the calculator configuration with precedence env > file > defaults.

    Requires:
        - config_path is None or a path to an INI file (missing files are skipped)
        - env is None (use os.environ) or a mapping of environment variables

    Ensures:
        - Returns a validated, frozen CalcConfig
        - Only settings present in a source override lower-precedence ones

    Raises:
        - ValueError if a value cannot be parsed or fails validation; the message names the source
    """
    if env is None:
        env = os.environ
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    values: Dict[str, Any] = { }

    # Priority 2: config file
    config_path = Path( config_path )
    if config_path.exists():
        values.update( _load_config_file( config_path ) )
        logger.debug( f"Loaded settings from {config_path}: {values}" )

    # Priority 1: environment variables (highest)
    for field_name, ( env_var, kind ) in SETTINGS.items():
        raw = env.get( env_var )
        if raw is None or raw.strip() == "":
            continue
        values[ field_name ] = _parse_value( raw, kind, source=f"environment variable {env_var}" )

    try:
        return CalcConfig( **values )
    except ValidationError as e:
        raise ValueError( f"Invalid livecalc configuration: {e}" ) from e


def _load_config_file( config_path: Path ) -> Dict[str, Any]:
    """
    Read the [livecalc] section of an INI file.

    Requires:
        - config_path points to an existing file

    Ensures:
        - Returns a dict containing only the recognized keys that are present
        - A file without a [livecalc] section yields an empty dict

    Raises:
        - ValueError if the file is not valid INI or holds an unparseable value
    """
    parser = ConfigParser()

    try:
        parser.read( config_path, encoding="utf-8" )
    except Exception as e:
        raise ValueError( f"Failed to read config file {config_path}: {e}" ) from e

    if SECTION_NAME not in parser:
        logger.info( f"No [{SECTION_NAME}] section in {config_path}, using defaults" )
        return { }

    section = parser[ SECTION_NAME ]
    values  = { }
    for field_name, ( _, kind ) in SETTINGS.items():
        if field_name in section:
            values[ field_name ] = _parse_value( section[ field_name ], kind, source=f"{config_path} [{SECTION_NAME}] {field_name}" )

    return values


def _parse_value( raw: str, kind: str, source: str ) -> Any:
    """
    Convert a raw string setting into an int or bool.

    Raises:
        - ValueError naming the source when the text is not a valid int/bool
    """
    text = raw.strip()

    if kind == "int":
        try:
            return int( text )
        except ValueError as e:
            raise ValueError( f"Expected an integer for {source}, got '{raw}'" ) from e

    if kind == "bool":
        state = ConfigParser.BOOLEAN_STATES.get( text.lower() )
        if state is None:
            raise ValueError( f"Expected a boolean for {source}, got '{raw}'" )
        return state

    raise ValueError( f"Unknown setting kind '{kind}' for {source}" )
