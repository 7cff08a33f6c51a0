"""
Make the cluster admin credentials usable on the master and locally.
"""
import os
import re

from pharos.phases import Phase
from pharos.phases.install_master import ADMIN_CONF

SERVER_RE = re.compile(r"(server: https://)(.+)(:6443)")


def config_dir():
    return os.path.join(os.path.expanduser("~"), ".pharos")


class ConfigureClient(Phase):
    """fetch admin.conf and configure kubectl on the master"""

    title = "Configure kube client"

    def __init__(self, local_dir=None):
        self.local_dir = local_dir or config_dir()

    def run(self, host_ctx):
        path = self.install_local_kubeconfig(host_ctx,
                                             self.read_kubeconfig(host_ctx))
        self.install_remote_kubeconfig(host_ctx)
        return path

    @staticmethod
    def read_kubeconfig(host_ctx):
        """
        admin.conf points at localhost, point it at the API address of the
        master instead
        """
        host_ctx.log.info("Fetching kubectl config ...")
        config_data = host_ctx.ssh.file(ADMIN_CONF).read()
        return SERVER_RE.sub(r"\g<1>%s\g<3>" % host_ctx.host.api_address,
                             config_data)

    def install_local_kubeconfig(self, host_ctx, config_data):
        os.makedirs(self.local_dir, mode=0o700, exist_ok=True)

        config_file = os.path.join(self.local_dir, host_ctx.host.api_address)
        host_ctx.log.info(f"Saving kubeconfig to {config_file} ...")

        if os.path.exists(config_file):
            os.chmod(config_file, 0o600)
        fd = os.open(config_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as fh:
            fh.write(config_data)

        return config_file

    @staticmethod
    def install_remote_kubeconfig(host_ctx):
        host_ctx.log.info("Configuring remote kubectl ...")

        host_ctx.ssh.run('install -m 0700 -d ~/.kube')
        host_ctx.ssh.run(
            f'sudo install -o $USER -m 0600 {ADMIN_CONF} ~/.kube/config')
