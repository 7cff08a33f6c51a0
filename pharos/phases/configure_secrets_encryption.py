"""
Distribute the secrets encryption config the API server reads through
``experimental-encryption-provider-config``.

All masters of a cluster must encrypt with the same key. The first master
of a run keeps the key of its existing config, or generates one if it has
none. The key is stored in the shared install context and pushed to every
following master.
"""
import base64
import os

import yaml

from pharos import SECRETS_ENCRYPTION_KEY
from pharos.context import ContextError
from pharos.kubeadm.config import SECRETS_CFG_DIR, SECRETS_CFG_FILE
from pharos.phases import Phase
from pharos.util.util import to_yaml

KEY_NAME = "key1"
KEY_SIZE = 32


def generate_secrets_encryption_config(key):
    """
    An ``EncryptionConfig`` encrypting secrets with aescbc.

    The identity provider comes last, so secrets written before encryption
    was enabled can still be read.

    Args:
        key (str): base64 encoded 32 byte key
    """
    return {
        'kind': 'EncryptionConfig',
        'apiVersion': 'v1',
        'resources': [{
            'resources': ['secrets'],
            'providers': [
                {'aescbc': {'keys': [{'name': KEY_NAME, 'secret': key}]}},
                {'identity': {}},
            ],
        }],
    }


def generate_key():
    return base64.b64encode(os.urandom(KEY_SIZE)).decode()


def parse_key(content):
    """
    Returns:
        str: the first aescbc key of an existing config
    """
    try:
        document = yaml.safe_load(content)
        for resource in document['resources']:
            for provider in resource['providers']:
                if 'aescbc' in provider:
                    return provider['aescbc']['keys'][0]['secret']
    except (yaml.YAMLError, KeyError, IndexError, TypeError) as exc:
        raise ContextError(
            f"unable to read {SECRETS_CFG_FILE}: {exc}")

    raise ContextError(f"{SECRETS_CFG_FILE} has no aescbc key")


class ConfigureSecretsEncryption(Phase):
    """secrets encryption config, with one key for all masters"""

    title = "Configure secrets encryption"

    def run(self, host_ctx):
        """
        Returns:
            bool: True if the config was written, False if the host already
            had it
        """
        remote = host_ctx.ssh.file(SECRETS_CFG_FILE)
        existing = parse_key(remote.read()) if remote.exist() else None

        with host_ctx.shared.locked() as shared:
            key = shared.get(SECRETS_ENCRYPTION_KEY)
            if key is None:
                if existing:
                    host_ctx.log.info("Reusing the secrets encryption key "
                                      "of this host ...")
                    key = existing
                else:
                    host_ctx.log.info("Generating secrets encryption key ...")
                    key = generate_key()
                shared.set(SECRETS_ENCRYPTION_KEY, key)

        if existing == key:
            host_ctx.log.debug("Secrets encryption config is up to date")
            return False
        if existing:
            host_ctx.log.warning("Replacing a secrets encryption key that "
                                 "differs from the other masters")

        host_ctx.log.info("Pushing secrets encryption config ...")
        host_ctx.ssh.run(f"sudo mkdir -p {SECRETS_CFG_DIR}")
        remote.write(to_yaml(generate_secrets_encryption_config(key)),
                     mode='0600')
        return True
