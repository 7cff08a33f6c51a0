"""
Install the control plane on a master with ``kubeadm init``.

The first master installed in a run lets kubeadm generate the cluster
certificate authority and service account keys, then copies them into the
shared install context. Every following master gets these files pushed
before ``kubeadm init`` runs, so kubeadm reuses them instead of creating a
second cluster identity.
"""
import posixpath

from pharos.context import MasterCerts, SHARED_CERT_FILES
from pharos.kubeadm import KubeadmConfig
from pharos.phases import Phase

KUBE_PKI_DIR = '/etc/kubernetes/pki'
ADMIN_CONF = '/etc/kubernetes/admin.conf'


class InstallMaster(Phase):
    """kubeadm init on a master that is not installed yet"""

    title = "Install master"

    @staticmethod
    def install_needed(host_ctx):
        return not host_ctx.ssh.file(ADMIN_CONF).exist()

    def run(self, host_ctx):
        """
        Returns:
            bool: True if the master was initialized, False if it already
            was installed
        """
        if not self.install_needed(host_ctx):
            host_ctx.log.info("Control plane already initialized, skipping")
            return False

        # held across the whole check-then-act sequence, so exactly one
        # master generates the cluster identity
        with host_ctx.shared.locked() as shared:
            certs = shared.master_certs
            if certs:
                self.push_certs(host_ctx, certs)
                self.install(host_ctx)
            else:
                self.install(host_ctx)
                shared.master_certs = self.pull_certs(host_ctx)

        return True

    @staticmethod
    def install(host_ctx):
        cfg = KubeadmConfig(host_ctx.config, host_ctx.host).generate()

        host_ctx.log.info("Initializing control plane ...")
        with host_ctx.ssh.tempfile(content=cfg.to_yaml(),
                                   prefix="kubeadm.cfg") as tmp_file:
            host_ctx.ssh.run(
                "sudo kubeadm init --ignore-preflight-errors all "
                f"--skip-token-print --config {tmp_file}")
        host_ctx.log.success("Initialization of control plane succeeded!")

    @staticmethod
    def push_certs(host_ctx, certs):
        """Copies certificates from memory to host"""
        host_ctx.log.info(
            "Pushing kube certificate authority files to host ...")

        host_ctx.ssh.run(f"sudo mkdir -p {KUBE_PKI_DIR}")
        for name, contents in certs.items():
            remote = host_ctx.ssh.file(posixpath.join(KUBE_PKI_DIR, name))
            remote.write(contents)
            remote.chmod("0400")

    @staticmethod
    def pull_certs(host_ctx):
        """
        Read the generated certificates back from the host.

        Returns:
            :class:`pharos.context.MasterCerts`
        """
        host_ctx.log.info(
            "Caching kube certificate authority files to memory ...")

        files = {}
        for name in SHARED_CERT_FILES:
            path = posixpath.join(KUBE_PKI_DIR, name)
            files[name] = host_ctx.ssh.file(path).read()

        certs = MasterCerts(files)
        certs.validate()
        host_ctx.log.debug("Cluster CA discovery hash: %s",
                           certs.discovery_hash)
        return certs
