"""
config.py
=========

The cluster configuration. A YAML file is parsed into a read-only
:class:`ClusterConfig`, validated once when loading, and then handed to
every phase of the run.

Example configuration::

    hosts:
      - address: 192.0.2.1
        private_address: 10.0.0.1
        role: master
      - address: 192.0.2.2
        role: worker
    network:
      service_cidr: 10.96.0.0/12
      pod_network_cidr: 10.32.0.0/12
    cloud:
      provider: aws
      config: ./cloud-config
"""
import os
import re
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple, Union

import yaml

from pharos import KUBE_VERSION, KUBEADM_VERSION
from pharos.util.net import is_cidr, is_ip, is_port
from pharos.util.util import expand_path, k8s_version_validation

ROLES = frozenset(("master", "worker", "etcd"))
HOSTNAME_RE = re.compile(r"^[a-zA-Z\d]([a-zA-Z\d\-.]*[a-zA-Z\d])?$")


class ConfigError(ValueError):
    """The cluster configuration is invalid"""


@dataclass(frozen=True)
class Host:
    """
    A cluster member.

    ``peer_address`` is the address other cluster members use to reach this
    host: the private address if one is given, the public one otherwise.
    """
    address: str
    private_address: Optional[str] = None
    api_endpoint: Optional[str] = None
    hostname: Optional[str] = None
    roles: FrozenSet[str] = frozenset(("worker",))
    container_runtime: str = "docker"
    cpu_arch: str = "amd64"
    user: str = "ubuntu"
    ssh_key_path: Optional[str] = None
    ssh_port: int = 22

    @property
    def peer_address(self):
        return self.private_address or self.address

    @property
    def api_address(self):
        """the address clients use to talk to the API server on this host"""
        return self.api_endpoint or self.address

    @property
    def node_name(self):
        return self.hostname or self.address

    def has_role(self, role):
        return role in self.roles

    def __str__(self):
        return self.address


@dataclass(frozen=True)
class Network:
    service_cidr: str = "10.96.0.0/12"
    pod_network_cidr: str = "10.32.0.0/12"


@dataclass(frozen=True)
class InternalEtcd:
    """etcd runs on the cluster hosts and uses the pharos internal PKI"""


@dataclass(frozen=True)
class ExternalEtcd:
    """
    etcd is provided outside of the cluster.

    The certificate fields hold local paths of the client certificate
    material, each of them is optional.
    """
    endpoints: Tuple[str, ...]
    ca_certificate: Optional[str] = None
    certificate: Optional[str] = None
    key: Optional[str] = None


@dataclass(frozen=True)
class Cloud:
    provider: str
    config: Optional[str] = None

    @property
    def external(self):
        return self.provider == "external"


@dataclass(frozen=True)
class Audit:
    server: str


@dataclass(frozen=True)
class WebhookCluster:
    name: str
    server: str
    certificate_authority: Optional[str] = None


@dataclass(frozen=True)
class WebhookUser:
    name: str
    client_certificate: Optional[str] = None
    client_key: Optional[str] = None


@dataclass(frozen=True)
class WebhookConfig:
    """where the API server finds the token authentication webhook"""
    cluster: WebhookCluster
    user: WebhookUser


@dataclass(frozen=True)
class TokenWebhook:
    config: WebhookConfig
    cache_ttl: Optional[str] = None


@dataclass(frozen=True)
class ClusterConfig:  # pylint: disable=too-many-instance-attributes
    """
    The whole cluster. Optional features are ``None`` when not configured,
    etcd is either :class:`InternalEtcd` or :class:`ExternalEtcd`.
    """
    hosts: Tuple[Host, ...]
    network: Network = field(default_factory=Network)
    etcd: Union[InternalEtcd, ExternalEtcd] = field(default_factory=InternalEtcd)
    cloud: Optional[Cloud] = None
    audit: Optional[Audit] = None
    token_webhook: Optional[TokenWebhook] = None
    kube_version: str = KUBE_VERSION
    kubeadm_version: str = KUBEADM_VERSION

    @property
    def master_hosts(self):
        return [h for h in self.hosts if h.has_role("master")]

    @property
    def worker_hosts(self):
        return [h for h in self.hosts if h.has_role("worker")]

    @property
    def etcd_hosts(self):
        """
        Hosts running the cluster internal etcd.

        Hosts tagged ``etcd`` if there are any, otherwise the masters.
        Empty when etcd is external.
        """
        if isinstance(self.etcd, ExternalEtcd):
            return []

        etcd_hosts = [h for h in self.hosts if h.has_role("etcd")]
        if not etcd_hosts:
            return self.master_hosts

        return etcd_hosts

    @classmethod
    def from_dict(cls, data, base_dir=None):
        """
        Parse and validate a configuration dictionary.

        Args:
            data (dict): the parsed YAML configuration
            base_dir (str): relative file paths are resolved against it

        Raises:
            ConfigError if the configuration is invalid
        """
        if not isinstance(data, dict):
            raise ConfigError("configuration must be a mapping")

        hosts = tuple(_parse_host(h, base_dir)
                      for h in data.get("hosts") or [])
        if not hosts:
            raise ConfigError("at least one host is required")

        kwargs = dict(
            hosts=hosts,
            network=_parse_network(data.get("network") or {}),
            etcd=_parse_etcd(data.get("etcd"), base_dir),
            cloud=_parse_cloud(data.get("cloud"), base_dir),
            audit=_parse_audit(data.get("audit")),
            token_webhook=_parse_authentication(data.get("authentication"),
                                                base_dir))

        for key in ("kube_version", "kubeadm_version"):
            if key in data:
                kwargs[key] = str(data[key])
                if not k8s_version_validation(kwargs[key]):
                    raise ConfigError(f"invalid {key}: {data[key]}")

        config = cls(**kwargs)
        if not config.master_hosts:
            raise ConfigError("at least one host with role master is required")

        return config

    @classmethod
    def load(cls, path):
        """read and validate a YAML configuration file"""
        with open(path, 'r') as stream:
            data = yaml.safe_load(stream)

        return cls.from_dict(data, base_dir=os.path.dirname(
            os.path.abspath(path)))


def _parse_host(data, base_dir):
    if not isinstance(data, dict):
        raise ConfigError(f"invalid host entry: {data}")

    address = data.get("address")
    if not address:
        raise ConfigError(f"host has no address: {data}")

    for key in ("address", "private_address", "api_endpoint"):
        value = data.get(key)
        if value and not (is_ip(value) or HOSTNAME_RE.match(value)):
            raise ConfigError(f"invalid {key} for host {address}: {value}")

    if "ssh_port" in data and not is_port(data["ssh_port"]):
        raise ConfigError(
            f"invalid ssh_port for host {address}: {data['ssh_port']}")

    roles = data.get("roles") or [data.get("role", "worker")]
    roles = frozenset(roles)
    unknown = roles - ROLES
    if unknown:
        raise ConfigError(
            f"unknown role(s) for host {address}: {', '.join(sorted(unknown))}")

    kwargs = {k: data[k] for k in ("private_address", "api_endpoint",
                                   "hostname", "container_runtime",
                                   "cpu_arch", "user", "ssh_port")
              if data.get(k) is not None}
    if data.get("ssh_key_path"):
        kwargs["ssh_key_path"] = expand_path(data["ssh_key_path"], base_dir)

    return Host(address=address, roles=roles, **kwargs)


def _parse_network(data):
    network = Network(**{k: data[k] for k in ("service_cidr",
                                              "pod_network_cidr")
                         if data.get(k)})
    for key in ("service_cidr", "pod_network_cidr"):
        if not is_cidr(getattr(network, key)):
            raise ConfigError(f"invalid network.{key}: "
                              f"{getattr(network, key)}")
    return network


def _parse_etcd(data, base_dir):
    data = data or {}
    certs = {k: expand_path(data.get(k), base_dir)
             for k in ("ca_certificate", "certificate", "key")}

    if not data.get("endpoints"):
        if any(certs.values()):
            raise ConfigError("etcd certificates given without etcd.endpoints")
        return InternalEtcd()

    for key, path in certs.items():
        _check_file(f"etcd.{key}", path)

    return ExternalEtcd(endpoints=tuple(data["endpoints"]), **certs)


def _parse_cloud(data, base_dir):
    if not data:
        return None

    if not data.get("provider"):
        if data.get("config"):
            raise ConfigError("cloud.config requires cloud.provider")
        raise ConfigError("cloud.provider is required")

    cloud = Cloud(provider=data["provider"],
                  config=expand_path(data.get("config"), base_dir))
    _check_file("cloud.config", cloud.config)
    return cloud


def _parse_audit(data):
    if not data:
        return None

    if not data.get("server"):
        raise ConfigError("audit requires a server")

    return Audit(server=data["server"])


def _parse_authentication(data, base_dir):
    webhook = (data or {}).get("token_webhook")
    if not webhook:
        return None

    config = webhook.get("config") or {}
    cluster = config.get("cluster") or {}
    user = config.get("user") or {}
    for key, value in (("cluster.name", cluster.get("name")),
                       ("cluster.server", cluster.get("server")),
                       ("user.name", user.get("name"))):
        if not value:
            raise ConfigError(
                f"authentication.token_webhook.config.{key} is required")

    paths = {}
    for section, key in (("cluster", "certificate_authority"),
                         ("user", "client_certificate"),
                         ("user", "client_key")):
        paths[key] = expand_path(config[section].get(key), base_dir)
        _check_file(f"authentication.token_webhook.config.{section}.{key}",
                    paths[key])

    cache_ttl = webhook.get("cache_ttl")
    return TokenWebhook(
        config=WebhookConfig(
            cluster=WebhookCluster(
                name=str(cluster["name"]),
                server=str(cluster["server"]),
                certificate_authority=paths["certificate_authority"]),
            user=WebhookUser(
                name=str(user["name"]),
                client_certificate=paths["client_certificate"],
                client_key=paths["client_key"])),
        cache_ttl=str(cache_ttl) if cache_ttl is not None else None)


def _check_file(key, path):
    if path is not None and not os.path.isfile(path):
        raise ConfigError(f"{key}: no such file: {path}")
