"""
Shared shape of the topoctl subcommands
"""

# Standard
import abc
import argparse


class CmdBase(abc.ABC):
    """A subcommand of the topoctl executable. Children set NAME and HELP, add
    their own arguments and implement cmd().
    """

    NAME = None
    HELP = None

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        """Register the subcommand and its arguments

        Args:
            subparsers:  argparse._SubParsersAction
                The subcommand section of the top-level parser

        Returns:
            parser:  argparse.ArgumentParser
                The parser for this subcommand
        """
        assert self.NAME, f"{self.__class__.__name__} must set NAME"
        parser = subparsers.add_parser(self.NAME, help=self.HELP)
        self.add_arguments(parser)
        return parser

    @abc.abstractmethod
    def add_arguments(self, parser: argparse.ArgumentParser):
        """Add the subcommand specific arguments"""

    @abc.abstractmethod
    def cmd(self, args: argparse.Namespace):
        """Run the subcommand with the parsed arguments"""
