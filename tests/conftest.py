"""
Shared fixtures
"""
#  pylint: disable=redefined-outer-name
import datetime

import pytest

from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from pharos.config import ClusterConfig
from pharos.context import SharedInstallContext
from pharos.phases import HostContext
from fakes import FakeSSH, kubeadm_init


def create_key(size=2048, public_exponent=65537):
    return rsa.generate_private_key(
        public_exponent=public_exponent,
        key_size=size,
        backend=default_backend()
    )


def create_ca(private_key, name="kubernetes"):
    """a self signed CA certificate"""
    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "DE"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Kubernetes"),
        x509.NameAttribute(NameOID.COMMON_NAME, name),
    ])
    now = datetime.datetime.utcnow()
    return x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        issuer
    ).public_key(
        private_key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        now
    ).not_valid_after(
        now + datetime.timedelta(days=365)
    ).add_extension(
        x509.BasicConstraints(ca=True, path_length=None), critical=True
    ).sign(private_key, hashes.SHA256(), default_backend())


def key_pem(key):
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption()).decode()


def public_key_pem(key):
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo).decode()


def cert_pem(cert):
    return cert.public_bytes(serialization.Encoding.PEM).decode()


def generate_master_cert_files():
    """what kubeadm init leaves in /etc/kubernetes/pki"""
    ca_key = create_key()
    sa_key = create_key()
    return {
        "ca.crt": cert_pem(create_ca(ca_key)),
        "ca.key": key_pem(ca_key),
        "sa.key": key_pem(sa_key),
        "sa.pub": public_key_pem(sa_key),
    }


@pytest.fixture(scope="session")
def master_cert_files():
    return generate_master_cert_files()


@pytest.fixture(scope="session")
def other_cert_files():
    return generate_master_cert_files()


@pytest.fixture
def cluster_dict():
    return {
        "hosts": [
            {"address": "192.0.2.1", "private_address": "10.0.0.1",
             "role": "master"},
            {"address": "192.0.2.2", "private_address": "10.0.0.2",
             "role": "master"},
            {"address": "192.0.2.3", "role": "worker"},
        ],
    }


@pytest.fixture
def cluster(cluster_dict):
    return ClusterConfig.from_dict(cluster_dict)


@pytest.fixture
def shared():
    return SharedInstallContext()


@pytest.fixture
def host_ctx_factory(shared, master_cert_files):
    """
    build a :class:`HostContext` on a fresh :class:`FakeSSH` whose
    ``kubeadm init`` produces master_cert_files
    """
    def factory(config, host, files=None, handlers=None):
        all_handlers = {"sudo kubeadm init": kubeadm_init(master_cert_files)}
        all_handlers.update(handlers or {})
        ssh = FakeSSH(host, files=files, handlers=all_handlers)
        ssh.connect()
        return HostContext(host=host, config=config, ssh=ssh, shared=shared)
    return factory
