#!/usr/bin/env python
"""
Command line entrypoint for the application operator
"""

# Standard
from typing import Dict, List, Optional, Sequence, Tuple
import argparse
import sys

# First Party
import aconfig
import alog

# Local
from .cmd import CmdBase, RunOperatorCmd
from .config import library_config, validate_config
from .log_format import configure_logging

log = alog.use_channel("MAIN")

# Command used when the command line does not name one
DEFAULT_COMMAND = "run"

# Maps an argparse dest to the path of its key in the library config
ConfigSetters = Dict[str, List[str]]

## Library config arguments ####################################################


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "yes", "1", "on"):
        return True
    if lowered in ("false", "no", "0", "off"):
        return False
    raise argparse.ArgumentTypeError(f"Expected a boolean but got {value}")


def add_library_config_args(
    parser,
    config_section: Optional[aconfig.AttributeAccessDict] = None,
    path: Optional[List[str]] = None,
) -> ConfigSetters:
    """Add a --dotted.key option for every leaf of the library config. The
    current value of each key is the option's default.

    Returns:
        setters:  ConfigSetters
            The config path for the dest of every added option
    """
    setters = {}
    path = path or []
    config_section = config_section if config_section is not None else library_config
    for key, val in config_section.items():
        key_path = path + [key]
        if isinstance(val, dict):
            setters.update(add_library_config_args(parser, val, key_path))
            continue

        option = "--" + ".".join(key_path)
        dest = "_".join(key_path)
        kwargs = {
            "dest": dest,
            "default": val,
            "help": f"Override the {'.'.join(key_path)} library config",
        }
        if isinstance(val, list):
            kwargs["nargs"] = "*"
        elif isinstance(val, bool):
            kwargs["type"] = _parse_bool
            kwargs["nargs"] = "?"
            kwargs["const"] = True
        elif val is not None:
            kwargs["type"] = type(val)
        parser.add_argument(option, **kwargs)
        setters[dest] = key_path
    return setters


def update_library_config(args: argparse.Namespace, setters: ConfigSetters):
    """Write the parsed option values back into the library config"""
    for dest, key_path in setters.items():
        section = library_config
        for key in key_path[:-1]:
            section = section[key]
        section[key_path[-1]] = getattr(args, dest)


## Parser ######################################################################


def build_parser(
    commands: Sequence[CmdBase],
) -> Tuple[argparse.ArgumentParser, ConfigSetters]:
    """Build the main parser with one subcommand per command. Every command
    accepts the library config options.
    """
    parser = argparse.ArgumentParser(description=__doc__)
    subparsers = parser.add_subparsers(help="Available commands", dest="command")
    setters = {}
    for command in commands:
        subparser = command.add_subparser(subparsers)
        subparser.set_defaults(func=command.cmd)
        setters.update(
            add_library_config_args(
                subparser.add_argument_group("Library Configuration")
            )
        )
    return parser, setters


def _with_default_command(argv: List[str], command_names: Sequence[str]) -> List[str]:
    """Insert the default command when the first argument is not a command"""
    if (argv and argv[0] in command_names) or "-h" in argv or "--help" in argv:
        return argv
    return [DEFAULT_COMMAND] + argv


## Main ########################################################################


def main(argv: Optional[List[str]] = None):
    """Parse the command line, apply the config overrides and run the
    selected command
    """
    commands = [RunOperatorCmd()]
    parser, setters = build_parser(commands)
    argv = sys.argv[1:] if argv is None else argv
    args = parser.parse_args(_with_default_command(argv, [DEFAULT_COMMAND]))

    update_library_config(args, setters)
    validate_config()
    configure_logging(library_config)
    log.debug2("Running %s with %s", args.command, vars(args))

    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
