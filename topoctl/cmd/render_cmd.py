"""
Print the dependents that would be created for a custom resource without
touching a cluster
"""
# Standard
import argparse
import sys

# Third Party
import yaml

# First Party
import alog

# Local
from ..manifests import ReplicaManifestGenerator
from .base import CmdBase

log = alog.use_channel("MAIN")


class RenderCmd(CmdBase):
    __doc__ = __doc__

    NAME = "render"
    HELP = "Print the generated dependents of a CR manifest as yaml"

    def add_arguments(self, parser: argparse.ArgumentParser):
        render_args = parser.add_argument_group("Render Configuration")
        render_args.add_argument(
            "--cr",
            "-c",
            required=True,
            help="Path to the CR manifest yaml to render",
        )
        render_args.add_argument(
            "--output",
            "-o",
            default=None,
            help="File to write the rendered yaml to (default stdout)",
        )

    def cmd(self, args: argparse.Namespace):
        with open(args.cr, encoding="utf-8") as handle:
            cr_manifest = yaml.safe_load(handle)
        cr_manifest.setdefault("metadata", {}).setdefault("namespace", "default")

        groups, prefixes = ReplicaManifestGenerator().generate(cr_manifest)
        log.info("Rendering %d prefixes: %s", len(prefixes), prefixes)
        manifests = [dep.manifest for group in groups for dep in group.objects]

        if args.output:
            with open(args.output, "w", encoding="utf-8") as handle:
                yaml.safe_dump_all(manifests, handle, sort_keys=False)
        else:
            yaml.safe_dump_all(manifests, sys.stdout, sort_keys=False)
