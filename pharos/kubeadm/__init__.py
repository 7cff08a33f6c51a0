"""
kubeadm configuration documents
"""
from .config import KubeadmConfig, ControlPlaneConfig, VolumeMount  # noqa
from .webhook import generate_authentication_token_webhook_config  # noqa
