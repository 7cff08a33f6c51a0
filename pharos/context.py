"""
context.py
==========

State shared between the hosts of a single run.

The first master to be installed generates the cluster certificate
authority and the service account key pair. They are kept in memory and
pushed to every master installed afterwards, so all masters share one
cluster identity. The orchestrator creates one :class:`SharedInstallContext`
per run and hands it to each phase.
"""
import threading
from collections.abc import Mapping
from contextlib import contextmanager

from pharos import MASTER_CERTS
from pharos.ssl import (load_cert, load_key, load_public_key, keys_match,
                        cert_signed_by, discovery_hash)


SHARED_CERT_FILES = ("ca.crt", "ca.key", "sa.key", "sa.pub")


class ContextError(RuntimeError):
    """The shared install context was used in an unsupported way"""


class MasterCerts(Mapping):
    """
    The four files making up the cluster identity, ``name -> bytes``.

    A bundle is always complete: construction fails if one of
    :data:`SHARED_CERT_FILES` is missing or empty.

    Args:
        files (dict): file name to file content
    """

    def __init__(self, files):
        missing = [name for name in SHARED_CERT_FILES if not files.get(name)]
        if missing:
            raise ContextError(
                "incomplete master certificates, missing: %s" % ", ".join(missing))

        self._files = {name: _as_bytes(files[name])
                       for name in SHARED_CERT_FILES}

    def __getitem__(self, name):
        return self._files[name]

    def __iter__(self):
        return iter(SHARED_CERT_FILES)

    def __len__(self):
        return len(self._files)

    def validate(self):
        """
        Check that the keys belong to their certificate and public key.

        Raises:
            ContextError if the bundle is inconsistent
        """
        try:
            ca_cert = load_cert(self["ca.crt"])
            ca_key = load_key(self["ca.key"])
            sa_key = load_key(self["sa.key"])
            sa_pub = load_public_key(self["sa.pub"])
        except ValueError as exc:
            raise ContextError(f"unable to parse master certificates: {exc}")

        if not cert_signed_by(ca_cert, ca_key):
            raise ContextError("ca.key does not match ca.crt")

        if not keys_match(sa_key, sa_pub):
            raise ContextError("sa.key does not match sa.pub")

    @property
    def discovery_hash(self):
        """the hash nodes use to pin the cluster CA when joining"""
        return "sha256:" + discovery_hash(load_cert(self["ca.crt"]))


def _as_bytes(content):
    if isinstance(content, str):
        return content.encode()
    return bytes(content)


class SharedInstallContext:
    """
    A process wide keyed store, written once per key.

    Readers and writers that need a check-then-act sequence must hold
    :meth:`locked` for the whole sequence, so that two hosts never both
    find a key empty and both populate it.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._store = {}

    @contextmanager
    def locked(self):
        """hold the context lock"""
        with self._lock:
            yield self

    def get(self, key, default=None):
        with self._lock:
            return self._store.get(key, default)

    def __contains__(self, key):
        with self._lock:
            return key in self._store

    def set(self, key, value):
        """
        Store a value.

        Raises:
            ContextError if the key was already written
        """
        with self._lock:
            if key in self._store:
                raise ContextError(f"{key} is already set")
            self._store[key] = value

    @property
    def master_certs(self):
        """the shared :class:`MasterCerts` or None"""
        return self.get(MASTER_CERTS)

    @master_certs.setter
    def master_certs(self, certs):
        if not isinstance(certs, MasterCerts):
            certs = MasterCerts(certs)
        self.set(MASTER_CERTS, certs)

    def discovery_hash(self):
        """
        Returns:
            The discovery hash of the shared CA, or None before the first
            master was installed.
        """
        certs = self.master_certs
        if certs is None:
            return None
        return certs.discovery_hash

    def clear(self):
        with self._lock:
            self._store.clear()
