#!/usr/bin/env python
"""
The main module provides the executable entrypoint for topoctl
"""

# Standard
from typing import Any, Dict, Iterator, List, Optional, Tuple
import argparse
import sys

# First Party
import aconfig
import alog

# Local
from . import config
from .cmd import CmdBase, RenderCmd, RunControllerCmd
from .config import library_config
from .log_format import TopoJsonFormatter

## Constants ###################################################################

log = alog.use_channel("MAIN")

# Command used when the first argument does not name one
DEFAULT_COMMAND = RunControllerCmd.NAME

ALL_COMMANDS = [RunControllerCmd, RenderCmd]

## Library Config Args #########################################################


def _config_leaves(
    config_obj: aconfig.AttributeAccessDict,
    path: List[str],
) -> Iterator[Tuple[List[str], Any]]:
    """Walk the config depth first, yielding the key path of every value that
    is not itself a section
    """
    for key, val in config_obj.items():
        sub_path = path + [key]
        if isinstance(val, aconfig.AttributeAccessDict):
            yield from _config_leaves(val, sub_path)
        else:
            yield sub_path, val


def _override_kwargs(dest_name: str, dotted_name: str, default: Any) -> dict:
    kwargs = {
        "default": default,
        "dest": dest_name,
        "help": f"Override {dotted_name} (see topoctl/config/config.yaml)",
    }
    if isinstance(default, list):
        kwargs["nargs"] = "*"
    elif isinstance(default, bool):
        kwargs["action"] = "store_true"
    elif default is not None:
        kwargs["type"] = type(default)
    return kwargs


def add_library_config_args(
    parser, config_obj=None, path=None
) -> Dict[str, List[str]]:
    """Add a --<dotted.key> override for every value of the library config

    Args:
        parser:  argparse.ArgumentParser or argument group
            Where the overrides are added
        config_obj:  Optional[aconfig.AttributeAccessDict]
            The config section to expose (default the whole library config)
        path:  Optional[List[str]]
            Key path of config_obj inside the library config

    Returns:
        setters:  Dict[str, List[str]]
            The argparse dest of each override mapped to its key path
    """
    setters = {}
    for key_path, default in _config_leaves(config_obj or library_config, path or []):
        dotted_name = ".".join(key_path)
        option = f"--{dotted_name}"
        # pylint: disable=protected-access
        if option in parser._option_string_actions:
            continue
        dest_name = "_".join(key_path)
        parser.add_argument(
            option, **_override_kwargs(dest_name, dotted_name, default)
        )
        setters[dest_name] = key_path
    return setters


def update_library_config(args: argparse.Namespace, setters: Dict[str, List[str]]):
    """Write the parsed override values back into the library config"""
    for dest_name, key_path in setters.items():
        *section_path, leaf = key_path
        section = library_config
        for key in section_path:
            section = section[key]
        section[leaf] = getattr(args, dest_name)


## Parser ######################################################################


def add_command(
    subparsers: argparse._SubParsersAction,
    cmd: CmdBase,
) -> argparse.ArgumentParser:
    """Add a subcommand with the library config overrides attached"""
    parser = cmd.add_subparser(subparsers)
    library_args = parser.add_argument_group("Library Configuration")
    setters = add_library_config_args(library_args)
    parser.set_defaults(func=cmd.cmd, library_config_setters=setters)
    return parser


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="topoctl", description=__doc__)
    subparsers = parser.add_subparsers(help="Available commands", dest="command")
    for cmd_class in ALL_COMMANDS:
        add_command(subparsers, cmd_class())
    return parser


def _with_default_command(argv: List[str]) -> List[str]:
    """Prepend the default command when argv does not start with one"""
    commands = [cmd_class.NAME for cmd_class in ALL_COMMANDS]
    if argv and (argv[0] in commands or argv[0] in ("-h", "--help")):
        return argv
    log.debug2("No command given. Using [%s]", DEFAULT_COMMAND)
    return [DEFAULT_COMMAND] + argv


## Main ########################################################################


def main(argv: Optional[List[str]] = None):
    """The main module provides the executable entrypoint for topoctl"""
    argv = sys.argv[1:] if argv is None else list(argv)
    parser = build_parser()
    args = parser.parse_args(_with_default_command(argv))

    # Provide overrides to the library configs
    update_library_config(args, args.library_config_setters)

    # Reconfigure logging
    alog.configure(
        default_level=config.log_level,
        filters=config.log_filters,
        formatter=TopoJsonFormatter() if config.log_json else "pretty",
        thread_id=config.log_thread_id,
    )

    # Run the command's function
    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
