"""
General purpose utilities
"""
import os
import re

import yaml


VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")


def k8s_version_validation(version):
    """
    Checks that a version string looks like ``X.Y.Z``.

    Args:
        version (str): the version to check

    Returns:
        True if valid, False otherwise
    """
    if not isinstance(version, str):
        return False

    return bool(VERSION_RE.match(version))


def to_yaml(document):
    """
    dump a document (nested dicts and lists) as block style YAML
    """
    return yaml.safe_dump(document, default_flow_style=False)


def expand_path(path, base_dir=None):
    """
    Resolve a path from the cluster configuration file.

    ``~`` is expanded, relative paths are taken relative to base_dir.
    """
    if path is None:
        return None

    path = os.path.expanduser(path)
    if base_dir and not os.path.isabs(path):
        path = os.path.join(base_dir, path)

    return os.path.abspath(path)


def read_file(path, mode="rb"):
    """read a local file"""
    with open(path, mode) as fh:
        return fh.read()
