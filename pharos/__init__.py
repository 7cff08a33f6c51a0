# pylint: disable=missing-docstring
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version('pharos')
except PackageNotFoundError:
    __version__ = '1.2.1'

# Defining some constants
KUBE_VERSION = "1.10.4"
KUBEADM_VERSION = "1.10.4"
MASTER_CERTS = "master-certs"
SECRETS_ENCRYPTION_KEY = "secrets-encryption-key"
