"""
kubeadm configuration
=====================

Generate the ``MasterConfiguration`` document ``kubeadm init`` and
``kubeadm upgrade apply`` are run with. The document only depends on the
cluster configuration and the host; nothing is read from or written to the
host here. Files referenced by the document are pushed by
:mod:`pharos.phases.configure_master`.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pharos.config import ExternalEtcd
from pharos.util.util import to_yaml

API_VERSION = 'kubeadm.k8s.io/v1alpha1'
KIND = 'MasterConfiguration'

ETCD_CERT_DIR = '/etc/pharos/etcd'
ETCD_PORT = 2379
INTERNAL_ETCD_CERT_FILE = '/etc/pharos/pki/etcd/client.pem'
INTERNAL_ETCD_CA_FILE = '/etc/pharos/pki/ca.pem'
INTERNAL_ETCD_KEY_FILE = '/etc/pharos/pki/etcd/client-key.pem'

AUTHENTICATION_TOKEN_WEBHOOK_CERT_DIR = '/etc/pharos/token_webhook'
AUTHENTICATION_TOKEN_WEBHOOK_CONFIG_DIR = '/etc/kubernetes/authentication'
AUTHENTICATION_TOKEN_WEBHOOK_CONFIG_FILE = \
    AUTHENTICATION_TOKEN_WEBHOOK_CONFIG_DIR + '/token-webhook-config.yaml'

AUDIT_CFG_DIR = '/etc/pharos/audit'
AUDIT_WEBHOOK_CONFIG_FILE = AUDIT_CFG_DIR + '/webhook.yml'
AUDIT_POLICY_FILE = AUDIT_CFG_DIR + '/policy.yml'

SECRETS_CFG_DIR = '/etc/pharos/secrets-encryption'
SECRETS_CFG_FILE = SECRETS_CFG_DIR + '/config.yml'

CLOUD_CFG_DIR = '/etc/pharos/cloud'
CLOUD_CFG_FILE = CLOUD_CFG_DIR + '/cloud-config'

CRIO_RUNTIME = 'cri-o'
CRIO_SOCKET = '/var/run/crio/crio.sock'


@dataclass(frozen=True)
class VolumeMount:
    """a host directory bind mounted into the API server pod"""
    name: str
    host_path: str
    mount_path: str

    @classmethod
    def bind(cls, name, path):
        return cls(name, path, path)

    def to_dict(self):
        return {'name': self.name,
                'hostPath': self.host_path,
                'mountPath': self.mount_path}


@dataclass(frozen=True)
class ControlPlaneConfig:  # pylint: disable=too-many-instance-attributes
    """
    A generated kubeadm master configuration.

    Instances are read only; :meth:`to_dict` returns a new plain document on
    every call.
    """
    node_name: str
    kubernetes_version: str
    api: Mapping[str, str]
    cert_sans: Tuple[str, ...]
    networking: Mapping[str, str]
    controller_manager_extra_args: Mapping[str, str]
    etcd: Mapping[str, object]
    api_server_extra_args: Mapping[str, str]
    api_server_extra_volumes: Tuple[VolumeMount, ...]
    cloud_provider: Optional[str] = None
    cri_socket: Optional[str] = None

    def to_dict(self):
        etcd = dict(self.etcd)
        etcd['endpoints'] = list(etcd['endpoints'])

        config = {
            'apiVersion': API_VERSION,
            'kind': KIND,
            'nodeName': self.node_name,
            'kubernetesVersion': self.kubernetes_version,
            'api': dict(self.api),
            'apiServerCertSANs': list(self.cert_sans),
            'networking': dict(self.networking),
            'controllerManagerExtraArgs': dict(
                self.controller_manager_extra_args),
            'apiServerExtraArgs': dict(self.api_server_extra_args),
            'etcd': etcd,
            'apiServerExtraVolumes': [
                v.to_dict() for v in self.api_server_extra_volumes],
        }
        if self.cri_socket:
            config['criSocket'] = self.cri_socket
        if self.cloud_provider:
            config['cloudProvider'] = self.cloud_provider

        return config

    def to_yaml(self):
        return to_yaml(self.to_dict())


def _frozen(mapping):
    return MappingProxyType(dict(mapping))


class KubeadmConfig:
    """
    Build the kubeadm configuration of a master host.

    Args:
        config (:class:`pharos.config.ClusterConfig`): a validated cluster
            configuration
        host (:class:`pharos.config.Host`): the master to configure
    """

    def __init__(self, config, host):
        self.config = config
        self.host = host

    def generate(self):
        """
        Returns:
            :class:`ControlPlaneConfig`, a new value on each call
        """
        extra_args = {
            'apiserver-count': str(len(self.config.master_hosts))
        }
        volumes = []

        cloud_provider = None
        cloud = self.config.cloud
        if cloud and not cloud.external:
            cloud_provider = cloud.provider
            if cloud.config:
                extra_args['cloud-config'] = CLOUD_CFG_FILE

        if isinstance(self.config.etcd, ExternalEtcd):
            etcd = self.external_etcd()
        else:
            etcd = self.internal_etcd()

        if self.config.token_webhook:
            extra_args.update(authentication_token_webhook_args(
                self.config.token_webhook.cache_ttl))
            volumes += volume_mounts_for_authentication_token_webhook()

        if self.config.audit:
            extra_args.update(audit_webhook_args())
            volumes += volume_mounts_for_audit_webhook()

        # secrets encryption is always on
        extra_args['experimental-encryption-provider-config'] = \
            SECRETS_CFG_FILE
        volumes.append(VolumeMount.bind('k8s-secrets-config', SECRETS_CFG_DIR))

        cri_socket = None
        if self.host.container_runtime == CRIO_RUNTIME:
            cri_socket = CRIO_SOCKET

        return ControlPlaneConfig(
            node_name=self.host.node_name,
            kubernetes_version=self.config.kube_version,
            api=_frozen({
                'advertiseAddress': self.host.peer_address,
                'controlPlaneEndpoint': 'localhost',
            }),
            cert_sans=self.build_extra_sans(),
            networking=_frozen({
                'serviceSubnet': self.config.network.service_cidr,
                'podSubnet': self.config.network.pod_network_cidr,
            }),
            controller_manager_extra_args=_frozen({
                'horizontal-pod-autoscaler-use-rest-clients': 'false',
            }),
            etcd=_frozen(etcd),
            api_server_extra_args=_frozen(extra_args),
            api_server_extra_volumes=tuple(volumes),
            cloud_provider=cloud_provider,
            cri_socket=cri_socket)

    def build_extra_sans(self):
        """
        The API server certificate names, without duplicates, in the order
        localhost, public address, private address, API endpoint.
        """
        sans = ['localhost', self.host.address, self.host.private_address,
                self.host.api_endpoint]
        return tuple(dict.fromkeys(san for san in sans if san))

    def internal_etcd(self):
        endpoints = tuple(f"https://{h.peer_address}:{ETCD_PORT}"
                          for h in self.config.etcd_hosts)
        return {
            'endpoints': endpoints,
            'certFile': INTERNAL_ETCD_CERT_FILE,
            'caFile': INTERNAL_ETCD_CA_FILE,
            'keyFile': INTERNAL_ETCD_KEY_FILE,
        }

    def external_etcd(self):
        etcd = self.config.etcd
        config = {'endpoints': tuple(etcd.endpoints)}
        if etcd.certificate:
            config['certFile'] = ETCD_CERT_DIR + '/certificate.pem'
        if etcd.ca_certificate:
            config['caFile'] = ETCD_CERT_DIR + '/ca-certificate.pem'
        if etcd.key:
            config['keyFile'] = ETCD_CERT_DIR + '/certificate-key.pem'
        return config


def authentication_token_webhook_args(cache_ttl=None):
    args = {
        'authentication-token-webhook-config-file':
        AUTHENTICATION_TOKEN_WEBHOOK_CONFIG_FILE
    }
    if cache_ttl:
        args['authentication-token-webhook-cache-ttl'] = cache_ttl
    return args


def volume_mounts_for_authentication_token_webhook():
    return [
        VolumeMount.bind('k8s-auth-token-webhook',
                         AUTHENTICATION_TOKEN_WEBHOOK_CONFIG_DIR),
        VolumeMount.bind('pharos-auth-token-webhook-certs',
                         AUTHENTICATION_TOKEN_WEBHOOK_CERT_DIR),
    ]


def audit_webhook_args():
    return {
        'audit-webhook-config-file': AUDIT_WEBHOOK_CONFIG_FILE,
        'audit-policy-file': AUDIT_POLICY_FILE,
    }


def volume_mounts_for_audit_webhook():
    return [VolumeMount.bind('k8s-audit-webhook', AUDIT_CFG_DIR)]
