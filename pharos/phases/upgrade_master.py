"""
Upgrade the control plane of an installed master with
``kubeadm upgrade apply``.
"""
from pharos.kubeadm import KubeadmConfig
from pharos.phases import Phase
from pharos.phases.util import exec_script

APISERVER_MANIFEST = '/etc/kubernetes/manifests/kube-apiserver.yaml'


class UpgradeMaster(Phase):
    """upgrade kubeadm and the control plane if the version differs"""

    title = "Upgrade master"

    @staticmethod
    def upgrade_needed(host_ctx):
        """
        Compare the API server image of the running control plane with the
        configured version.

        The manifest text is searched for the literal image tag
        ``kube-apiserver-<arch>:v<version>``, so this depends on how kubeadm
        writes the manifest. A master without the manifest is not installed
        and has nothing to upgrade.
        """
        manifest = host_ctx.ssh.file(APISERVER_MANIFEST)
        if not manifest.exist():
            return False

        image_tag = "kube-apiserver-{}:v{}".format(
            host_ctx.host.cpu_arch, host_ctx.config.kube_version)

        return image_tag not in manifest.read()

    def run(self, host_ctx):
        """
        Returns:
            bool: True if the control plane was upgraded
        """
        if not self.upgrade_needed(host_ctx):
            host_ctx.log.info("Control plane is up to date, skipping")
            return False

        self.upgrade_kubeadm(host_ctx)
        self.upgrade(host_ctx)
        return True

    @staticmethod
    def upgrade_kubeadm(host_ctx):
        host_ctx.log.info("Upgrading kubeadm ...")

        exec_script(host_ctx.ssh, "install-kubeadm.sh",
                    VERSION=host_ctx.config.kubeadm_version,
                    ARCH=host_ctx.host.cpu_arch)

    @staticmethod
    def upgrade(host_ctx):
        cfg = KubeadmConfig(host_ctx.config, host_ctx.host).generate()
        version = host_ctx.config.kube_version

        host_ctx.log.info("Upgrading control plane ...")
        with host_ctx.ssh.tempfile(content=cfg.to_yaml(),
                                   prefix="kubeadm.cfg") as tmp_file:
            host_ctx.ssh.run(
                f"sudo kubeadm upgrade apply {version} -y "
                "--ignore-preflight-errors=all --allow-experimental-upgrades "
                f"--config {tmp_file}")
        host_ctx.log.success("Control plane upgrade succeeded!")
