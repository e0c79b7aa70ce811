"""
Interface shared by the operator's subcommands
"""

# Standard
import abc
import argparse


class CmdBase(abc.ABC):
    """A subcommand registers its own parser and runs from the parsed args"""

    @abc.abstractmethod
    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        """Create the subcommand parser and add its arguments

        Args:
            subparsers:  argparse._SubParsersAction
                The subparsers of the main parser

        Returns:
            parser:  argparse.ArgumentParser
                The subcommand parser. The library config options are added
                to it by the caller.
        """

    @abc.abstractmethod
    def cmd(self, args: argparse.Namespace):
        """Run the command"""
