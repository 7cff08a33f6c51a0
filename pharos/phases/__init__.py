"""
Phases
======

A phase is one step of the cluster provisioning run on a single host. Each
phase has a ``title`` and a ``run(host_ctx)`` method taking a
:class:`HostContext`. Phases keep no state between hosts, everything shared
lives in :class:`pharos.context.SharedInstallContext`.
"""
import abc
from dataclasses import dataclass, field

from pharos.config import ClusterConfig, Host
from pharos.context import SharedInstallContext
from pharos.ssh import SSHClient
from pharos.util.logger import HostLogger


@dataclass
class HostContext:
    """Everything a phase gets to work with for one host"""
    host: Host
    config: ClusterConfig
    ssh: SSHClient
    shared: SharedInstallContext
    log: HostLogger = field(default=None)

    def __post_init__(self):
        if self.log is None:
            self.log = HostLogger(self.host.address)


class Phase(abc.ABC):
    """the interface of a provisioning step"""

    title = None

    @abc.abstractmethod
    def run(self, host_ctx):
        """run the phase on host_ctx.host"""

    def __str__(self):
        return self.title or self.__class__.__name__
