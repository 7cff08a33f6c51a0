"""
Push the files referenced by the kubeadm configuration to a master before
the control plane is installed or upgraded.
"""
from pharos.config import ExternalEtcd
from pharos.kubeadm import config as kubeadm
from pharos.kubeadm.webhook import (
    generate_audit_webhook_config,
    generate_authentication_token_webhook_config,
    WEBHOOK_CA_FILE, WEBHOOK_CERT_FILE, WEBHOOK_KEY_FILE)
from pharos.phases import Phase
from pharos.phases.util import read_resource
from pharos.util.util import read_file, to_yaml


class ConfigureMaster(Phase):
    """etcd certificates, audit, token webhook and cloud configuration"""

    title = "Configure master"

    def run(self, host_ctx):
        config = host_ctx.config

        etcd = config.etcd
        if isinstance(etcd, ExternalEtcd) and any(
                (etcd.ca_certificate, etcd.certificate, etcd.key)):
            self.push_external_etcd_certs(host_ctx)

        if config.audit:
            self.push_audit_config(host_ctx)

        if config.token_webhook:
            self.push_authentication_token_webhook_config(host_ctx)

        if config.cloud and config.cloud.config:
            self.push_cloud_config(host_ctx)

    @staticmethod
    def push_external_etcd_certs(host_ctx):
        host_ctx.log.info("Pushing external etcd certificates ...")

        etcd = host_ctx.config.etcd
        ssh = host_ctx.ssh
        ssh.run(f"sudo mkdir -p {kubeadm.ETCD_CERT_DIR}")
        for local, name, mode in (
                (etcd.ca_certificate, 'ca-certificate.pem', '0644'),
                (etcd.certificate, 'certificate.pem', '0644'),
                (etcd.key, 'certificate-key.pem', '0400')):
            if local:
                ssh.file(f"{kubeadm.ETCD_CERT_DIR}/{name}").write(
                    read_file(local), mode=mode)

    @staticmethod
    def push_audit_config(host_ctx):
        host_ctx.log.info("Pushing audit configs to master ...")

        ssh = host_ctx.ssh
        ssh.run(f"sudo mkdir -p {kubeadm.AUDIT_CFG_DIR}")
        ssh.file(kubeadm.AUDIT_WEBHOOK_CONFIG_FILE).write(
            to_yaml(generate_audit_webhook_config(
                host_ctx.config.audit.server)))
        ssh.file(kubeadm.AUDIT_POLICY_FILE).write(
            read_resource('audit', 'policy.yml'))

    @staticmethod
    def push_authentication_token_webhook_config(host_ctx):
        webhook_config = host_ctx.config.token_webhook.config
        ssh = host_ctx.ssh

        host_ctx.log.debug("Generating token authentication webhook config ...")
        document = generate_authentication_token_webhook_config(webhook_config)

        host_ctx.log.info("Pushing token authentication webhook config ...")
        ssh.run("sudo mkdir -p "
                f"{kubeadm.AUTHENTICATION_TOKEN_WEBHOOK_CONFIG_DIR}")
        ssh.file(kubeadm.AUTHENTICATION_TOKEN_WEBHOOK_CONFIG_FILE).write(
            to_yaml(document))

        certs = [(webhook_config.cluster.certificate_authority,
                  WEBHOOK_CA_FILE, '0644'),
                 (webhook_config.user.client_certificate,
                  WEBHOOK_CERT_FILE, '0644'),
                 (webhook_config.user.client_key, WEBHOOK_KEY_FILE, '0400')]
        if not any(local for local, _, _ in certs):
            return

        host_ctx.log.info(
            "Pushing token authentication webhook certificates ...")
        ssh.run("sudo mkdir -p "
                f"{kubeadm.AUTHENTICATION_TOKEN_WEBHOOK_CERT_DIR}")
        for local, remote, mode in certs:
            if local:
                ssh.file(remote).write(read_file(local), mode=mode)

    @staticmethod
    def push_cloud_config(host_ctx):
        host_ctx.log.info("Pushing cloud-config to master ...")

        ssh = host_ctx.ssh
        ssh.run(f"sudo mkdir -p {kubeadm.CLOUD_CFG_DIR}")
        ssh.file(kubeadm.CLOUD_CFG_FILE).write(
            read_file(host_ctx.config.cloud.config), mode='0600')
