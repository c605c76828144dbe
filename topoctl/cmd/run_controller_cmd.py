"""
This is the main entrypoint command for running the controller
"""
# Standard
from typing import List, Optional
import argparse
import os
import signal
import threading

# Third Party
import yaml

# First Party
import alog

# Local
from .. import config
from ..cache import WatchCache
from ..controller import Controller
from ..exceptions import CacheSyncTimeoutError, InformerFailedError
from ..manifests import DependentKind, ReplicaManifestGenerator
from ..store import DryRunStoreClient, OpenshiftStoreClient, StoreClientBase
from ..threads import InformerThread
from .base import CmdBase

log = alog.use_channel("MAIN")

# Seconds to wait for each informer to exit on shutdown. Informers are daemon
# threads so one stuck in a blocking read does not hold up the exit.
INFORMER_STOP_TIMEOUT = 5


class RunControllerCmd(CmdBase):
    __doc__ = __doc__

    NAME = "run"
    HELP = "Run the controller until SIGINT or SIGTERM"

    ## Interface ##

    def add_arguments(self, parser: argparse.ArgumentParser):
        runtime_args = parser.add_argument_group("Runtime Configuration")
        runtime_args.add_argument(
            "--cr",
            "-c",
            default=None,
            help="(dry run) A CR manifest yaml to apply directly ",
        )
        runtime_args.add_argument(
            "--resource_dir",
            "-r",
            default=None,
            help="(dry run) Path to a directory of yaml files that should exist in the cluster",
        )

    def cmd(self, args: argparse.Namespace):
        # Validate args
        assert args.cr is None or (
            config.dry_run and os.path.isfile(args.cr)
        ), "Can only specify --cr with dry run and it must point to a valid file"
        assert args.resource_dir is None or (
            config.dry_run and os.path.isdir(args.resource_dir)
        ), "Can only specify --resource_dir with dry run and it must point to a valid directory"

        # Parse pre-populated resources if needed
        resources = self._parse_resource_dir(args.resource_dir)

        # Set up the store, cache and controller
        store = self._setup_store(resources)
        cache = WatchCache()
        controller = Controller(cache, store, ReplicaManifestGenerator())
        controller.register_handlers(cache)

        # Register the signal handlers to stop the controller
        stop_event = threading.Event()

        def do_stop(*_, **__):  # pragma: no cover
            stop_event.set()

        signal.signal(signal.SIGINT, do_stop)
        signal.signal(signal.SIGTERM, do_stop)

        # Start the informers that keep the cache current
        log.info("Starting Informers")
        informers = self._setup_informers(store, cache, stop_event)
        for informer in informers:
            informer.start_thread()

        # If given, apply the CR directly
        if args.cr:
            log.info("Applying CR [%s]", args.cr)
            with open(args.cr, encoding="utf-8") as handle:
                cr_manifest = yaml.safe_load(handle)
                cr_manifest.setdefault("metadata", {}).setdefault(
                    "namespace", "default"
                )
                log.debug3(cr_manifest)
                store.create(cr_manifest)

        try:
            controller.run(stop_event)
        except CacheSyncTimeoutError as err:
            self._check_informers(informers)
            log.error("Unable to start controller: %s", err)
            raise
        finally:
            for informer in informers:
                informer.stop_and_join(INFORMER_STOP_TIMEOUT)
        self._check_informers(informers)

        # All done!
        log.info("SHUTTING DOWN")

    ## Impl ##

    @staticmethod
    def _check_informers(informers: List[InformerThread]):
        """Raise if the controller stopped because an informer gave up"""
        failed = [informer for informer in informers if informer.error is not None]
        if failed:
            for informer in failed:
                log.error("Informer %s failed: %s", informer.name, informer.error)
            raise InformerFailedError(
                f"Stopped watching {[informer.kind for informer in failed]}"
            ) from failed[0].error

    @staticmethod
    def _parse_resource_dir(resource_dir: Optional[str]) -> List[dict]:
        """If given, this will parse all yaml files found in the given directory"""
        all_resources = []
        if resource_dir is not None:
            for fname in sorted(os.listdir(resource_dir)):
                if fname.endswith(".yaml") or fname.endswith(".yml"):
                    resource_path = os.path.join(resource_dir, fname)
                    log.debug3("Reading resource file [%s]", resource_path)
                    with open(resource_path, encoding="utf-8") as handle:
                        all_resources.extend(
                            resource for resource in yaml.safe_load_all(handle) if resource
                        )
        return all_resources

    @staticmethod
    def _setup_store(resources: List[dict]) -> StoreClientBase:
        """Get the store client for the configured mode"""
        if config.dry_run:
            log.info("Running DRY RUN")
            return DryRunStoreClient(resources=resources)
        log.info("Running against the cluster")  # pragma: no cover
        return OpenshiftStoreClient()  # pragma: no cover

    @staticmethod
    def _setup_informers(
        store: StoreClientBase,
        cache: WatchCache,
        stop_event: threading.Event,
    ) -> List[InformerThread]:
        """Make one informer for the custom resource and one per dependent
        kind, all sharing the stop event
        """
        namespace = config.watch_namespace or None
        watches = [
            (
                config.controller.kind,
                f"{config.controller.group}/{config.controller.version}",
            )
        ] + [(kind.kind, kind.api_version) for kind in DependentKind]
        return [
            InformerThread(
                store=store,
                cache=cache,
                kind=kind,
                api_version=api_version,
                namespace=namespace,
                shutdown=stop_event,
            )
            for kind, api_version in watches
        ]
