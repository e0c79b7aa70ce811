"""
Commands for the operator command line
"""

# Local
from .base import CmdBase
from .run_operator_cmd import RunOperatorCmd
