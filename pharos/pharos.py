"""
pharos
======

The main entry point for provisioning the kubernetes control plane.
Don't use it directly, instead install the package with setup.py.
It automatically creates an executable in your path.

"""
import argparse
import sys

from mach import mach1

from . import __version__
from .config import ClusterConfig, ConfigError
from .phase_manager import PhaseManager, PhaseError
from .util.logger import Logger, LEVEL_NAMES

LOGGER = Logger(__name__)


def load_config(path):
    """load and validate the cluster configuration, exit on error"""
    try:
        return ClusterConfig.load(path)
    except FileNotFoundError:
        LOGGER.error(f"Error: configuration file {path} not found")
    except ConfigError as err:
        LOGGER.error(f"Error: invalid configuration {path}: {err}")
    sys.exit(1)


def run_phases(action, config, parallel):
    """run one action of the PhaseManager, exit on error"""
    with PhaseManager(config, parallel=parallel) as manager:
        try:
            getattr(manager, action)()
        except PhaseError as err:
            LOGGER.error(f"Error: {err}")
            sys.exit(1)


@mach1()
class Pharos:  # pylint: disable=no-self-use
    """
    The main entry point for the program. This class does the CLI parsing
    and decides which action should be taken
    """
    def __init__(self):
        self.parser.add_argument(  # pylint: disable=no-member
            "--version", action="store_true",
            help="show version and exit",
            default=argparse.SUPPRESS)

        verbosity_help = "".join([
            "set the verbosity level (",
            "0 = quiet, ",
            "1 = error, ",
            "2 = warning, ",
            "3 = info, ",
            "4 = debug)"])
        self.parser.add_argument("--verbosity",  # pylint: disable=no-member
                                 "-v",
                                 help=verbosity_help,
                                 choices=['0', '1', '2', '3', '4', 'quiet',
                                          'error', 'warning', 'info', 'debug'],
                                 type=str,
                                 default=3)

    def _get_version(self):
        print("%s version: %s" % (self.__class__.__name__, __version__))

    def _get_verbosity(self):
        pass

    def up(self, config: str, parallel: bool = False):
        """
        Install or upgrade the control plane of a cluster

        config - cluster configuration file
        parallel - run each phase on all masters at once
        """
        cluster = load_config(config)
        run_phases("up", cluster, parallel)
        LOGGER.success("Cluster control plane is ready")

    def upgrade(self, config: str, parallel: bool = False):
        """
        Upgrade the control plane of an installed cluster

        config - cluster configuration file
        parallel - run each phase on all masters at once
        """
        cluster = load_config(config)
        run_phases("upgrade", cluster, parallel)
        LOGGER.success("Cluster control plane upgrade finished")


def main():
    """
    run and execute pharos
    """
    k = Pharos()

    # pylint: disable=no-member
    k.parser.description = 'Provision the kubernetes control plane on ' \
                           'hosts reachable over SSH.'

    level = k.parser.parse_args().verbosity
    try:
        LOGGER.level = int(level)
    except ValueError:
        LOGGER.level = LEVEL_NAMES[level]

    # the mach decorator analyzes the methods in the class and dynamically
    # creates the CLI parser. It also adds the method run to the class.
    k.run()  # pylint: disable=no-member
