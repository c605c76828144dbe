"""
This module holds all of the command classes for topoctl's main entrypoint
"""

# Local
from .base import CmdBase
from .render_cmd import RenderCmd
from .run_controller_cmd import RunControllerCmd
