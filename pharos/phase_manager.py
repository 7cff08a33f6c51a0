"""
phase_manager.py
================

Run phases over the cluster hosts. The manager owns one SSH session per host
and the :class:`pharos.context.SharedInstallContext` of the run.
"""
from concurrent.futures import ThreadPoolExecutor

from pharos.context import ContextError, SharedInstallContext
from pharos.phases import HostContext
from pharos.phases.configure_client import ConfigureClient
from pharos.phases.configure_master import ConfigureMaster
from pharos.phases.configure_secrets_encryption import (
    ConfigureSecretsEncryption)
from pharos.phases.install_master import InstallMaster
from pharos.phases.upgrade_master import UpgradeMaster
from pharos.ssh import SSHClient, SSHError
from pharos.util.logger import Logger

LOGGER = Logger(__name__)


class PhaseError(RuntimeError):
    """
    A phase failed on a host.

    Args:
        phase: the failed phase
        host (:class:`pharos.config.Host`): the host it failed on
        cause (Exception): the underlying error
    """

    def __init__(self, phase, host, cause):
        self.phase = phase
        self.host = host
        self.cause = cause
        super().__init__(f"{phase} @ {host} failed: {cause}")


class PhaseManager:
    """
    Args:
        config (:class:`pharos.config.ClusterConfig`): the cluster
        ssh_factory: callable creating an unconnected session for a host
        shared (SharedInstallContext): defaults to a new, empty context
        parallel (bool): run a phase on all its hosts at the same time
    """

    def __init__(self, config, ssh_factory=SSHClient, shared=None,
                 parallel=False):
        self.config = config
        self.ssh_factory = ssh_factory
        self.shared = shared if shared is not None else SharedInstallContext()
        self.parallel = parallel
        self._sessions = {}

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.disconnect()

    def ssh(self, host):
        """the connected session of a host, opened on first use"""
        if host.address not in self._sessions:
            ssh = self.ssh_factory(host)
            ssh.connect()
            self._sessions[host.address] = ssh
        return self._sessions[host.address]

    def disconnect(self):
        for ssh in self._sessions.values():
            ssh.disconnect()
        self._sessions.clear()

    def run_phase_on_host(self, phase, host):
        LOGGER.debug("==> %s @ %s", phase, host)
        try:
            host_ctx = HostContext(host=host, config=self.config,
                                   ssh=self.ssh(host), shared=self.shared)
            return phase.run(host_ctx)
        except (SSHError, ContextError, OSError) as exc:
            raise PhaseError(phase, host, exc)

    def run_phase(self, phase, hosts):
        """
        Run one phase on hosts.

        Returns:
            list: the result of the phase on each host, in host order

        Raises:
            PhaseError for the first host the phase failed on
        """
        LOGGER.info("==> %s", phase)
        if not self.parallel or len(hosts) < 2:
            return [self.run_phase_on_host(phase, host) for host in hosts]

        with ThreadPoolExecutor(max_workers=len(hosts)) as pool:
            futures = [pool.submit(self.run_phase_on_host, phase, host)
                       for host in hosts]

        errors = [f.exception() for f in futures if f.exception()]
        if errors:
            for error in errors[1:]:
                LOGGER.error(str(error))
            raise errors[0]

        return [f.result() for f in futures]

    def run(self, phases, hosts):
        """run phases one after the other, each on all hosts"""
        return {str(phase): self.run_phase(phase, hosts) for phase in phases}

    def up(self):
        """
        Install or upgrade the control plane on all masters and fetch the
        admin kubeconfig from the first one.
        """
        masters = self.config.master_hosts
        results = self.run([ConfigureMaster(), ConfigureSecretsEncryption(),
                            UpgradeMaster(), InstallMaster()], masters)
        results.update(self.run([ConfigureClient()], masters[:1]))
        return results

    def upgrade(self):
        """upgrade the control plane on all installed masters"""
        return self.run([ConfigureMaster(), ConfigureSecretsEncryption(),
                         UpgradeMaster()],
                        self.config.master_hosts)
