"""
Run the operator: watch Applications and their children, serve the admission
hooks and reconcile until stopped
"""
# Standard
from typing import List, Optional
import argparse
import os
import signal
import sys

# Third Party
import yaml

# First Party
import alog

# Local
from .. import config, constants
from ..exceptions import assert_config
from ..store import InMemoryObjectStore, KubeObjectStore, ObjectStoreBase
from ..watch_manager import ApplicationWatchManager
from ..webhook import AdmissionServer, ApplicationAdmission
from .base import CmdBase

log = alog.use_channel("MAIN")

_YAML_SUFFIXES = (".yaml", ".yml")


class RunOperatorCmd(CmdBase):
    __doc__ = __doc__

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser("run", help=__doc__)
        dry_run_args = parser.add_argument_group("Dry Run")
        dry_run_args.add_argument(
            "--app",
            "-a",
            default=None,
            help="Application manifest to create once the watches are running",
        )
        dry_run_args.add_argument(
            "--resource_dir",
            "-r",
            default=None,
            help="Directory of yaml manifests to seed the in-memory store with",
        )
        return parser

    def cmd(self, args: argparse.Namespace):
        self._check_args(args)

        admission = ApplicationAdmission()
        store = self._setup_store(
            self._parse_resource_dir(args.resource_dir), admission
        )
        manager = ApplicationWatchManager(store)
        admission_server = (
            AdmissionServer(admission) if config.admission.enabled else None
        )

        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, lambda *_: manager.stop())

        log.info("Starting operator")
        if admission_server:
            admission_server.start_thread()
        manager.watch()
        if args.app:
            self._apply_app(store, args.app)

        manager.wait()
        if admission_server:
            admission_server.stop_thread()

        log.info("Operator stopped")
        if manager.failed:
            sys.exit(1)

    ## Impl ##

    @staticmethod
    def _check_args(args: argparse.Namespace):
        """The dry run inputs only make sense with the in-memory store"""
        if args.app is not None:
            assert_config(config.dry_run, "--app requires dry_run")
            assert_config(os.path.isfile(args.app), f"--app {args.app} is not a file")
        if args.resource_dir is not None:
            assert_config(config.dry_run, "--resource_dir requires dry_run")
            assert_config(
                os.path.isdir(args.resource_dir),
                f"--resource_dir {args.resource_dir} is not a directory",
            )

    @staticmethod
    def _parse_resource_dir(resource_dir: Optional[str]) -> List[dict]:
        """Load every document of the yaml files in the directory, in file
        name order
        """
        if resource_dir is None:
            return []
        resources = []
        for fname in sorted(os.listdir(resource_dir)):
            if not fname.endswith(_YAML_SUFFIXES):
                continue
            path = os.path.join(resource_dir, fname)
            log.debug3("Loading resources from %s", path)
            with open(path, encoding="utf-8") as handle:
                resources.extend(doc for doc in yaml.safe_load_all(handle) if doc)
        return resources

    @staticmethod
    def _setup_store(
        resources: List[dict],
        admission: ApplicationAdmission,
    ) -> ObjectStoreBase:
        """Pick the store. The dry run store is seeded with the resources and
        runs the admission hooks on its own writes.
        """
        if not config.dry_run:
            log.info("Using the cluster store")
            return KubeObjectStore()

        log.info("Using the in-memory dry run store")
        store = InMemoryObjectStore(resources=resources)
        store.register_admission_hook(
            constants.APPLICATION_API_VERSION, constants.APPLICATION_KIND, admission
        )
        return store

    @staticmethod
    def _apply_app(store: ObjectStoreBase, app_path: str):
        with open(app_path, encoding="utf-8") as handle:
            manifest = yaml.safe_load(handle)
        manifest.setdefault("metadata", {}).setdefault(
            "namespace", constants.DEFAULT_NAMESPACE
        )
        log.info("Creating Application from %s", app_path)
        log.debug3(manifest)
        store.create(manifest)
