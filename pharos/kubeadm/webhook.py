"""
Kubeconfig documents for the webhooks the API server calls out to.

The token authentication webhook and the audit webhook are both configured
with a kubeconfig shaped file. Only paths on the master are referenced; the
certificate files themselves are pushed by
:mod:`pharos.phases.configure_master`.
"""
from pharos.kubeadm.config import AUTHENTICATION_TOKEN_WEBHOOK_CERT_DIR

WEBHOOK_CA_FILE = AUTHENTICATION_TOKEN_WEBHOOK_CERT_DIR + '/ca.pem'
WEBHOOK_CERT_FILE = AUTHENTICATION_TOKEN_WEBHOOK_CERT_DIR + '/cert.pem'
WEBHOOK_KEY_FILE = AUTHENTICATION_TOKEN_WEBHOOK_CERT_DIR + '/key.pem'

CONTEXT_NAME = 'webhook'


def get_kubeconfig(cluster_name, server, user_name, context=CONTEXT_NAME):
    """
    format a kubeconfig document with one cluster, one user and one context
    """
    return {
        "kind": "Config",
        "apiVersion": "v1",
        "preferences": {},
        "clusters": [
            {
                "name": cluster_name,
                "cluster": {
                    "server": server
                }
            }
        ],
        "users": [
            {
                "name": user_name,
                "user": {}
            }
        ],
        "contexts": [
            {
                "name": context,
                "context": {
                    "cluster": cluster_name,
                    "user": user_name
                }
            }
        ],
        "current-context": context
    }


def generate_authentication_token_webhook_config(webhook_config):
    """
    Build the kubeconfig the API server uses to reach the token
    authentication webhook.

    Args:
        webhook_config (:class:`pharos.config.WebhookConfig`)

    Returns:
        dict: the kubeconfig document. ``certificate-authority``,
        ``client-certificate`` and ``client-key`` are only set if the
        matching file was configured.
    """
    cluster = webhook_config.cluster
    user = webhook_config.user
    config = get_kubeconfig(str(cluster.name), str(cluster.server),
                            str(user.name))

    if cluster.certificate_authority:
        config['clusters'][0]['cluster']['certificate-authority'] = \
            WEBHOOK_CA_FILE

    if user.client_certificate:
        config['users'][0]['user']['client-certificate'] = WEBHOOK_CERT_FILE

    if user.client_key:
        config['users'][0]['user']['client-key'] = WEBHOOK_KEY_FILE

    return config


def generate_audit_webhook_config(server):
    """
    kubeconfig for the audit webhook backend, sending events to ``server``
    """
    return get_kubeconfig('pharos-audit', server, 'kube-apiserver',
                          context='default')
