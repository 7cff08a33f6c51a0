"""
Test pharos.phases.install_master
"""
#  pylint: disable=redefined-outer-name
import pytest
import yaml

from pharos.config import ClusterConfig
from pharos.context import ContextError, SHARED_CERT_FILES
from pharos.phases.install_master import (
    InstallMaster, ADMIN_CONF, KUBE_PKI_DIR)
from pharos.ssh import RemoteCommandError

from fakes import kubeadm_init


def writes(ssh):
    return ssh.commands_like("sudo install ")


def test_install_is_skipped_when_installed(cluster, host_ctx_factory):
    host = cluster.master_hosts[0]
    host_ctx = host_ctx_factory(cluster, host, files={ADMIN_CONF: "config"})

    assert InstallMaster().run(host_ctx) is False

    assert host_ctx.ssh.commands == [f"sudo test -e {ADMIN_CONF}"]
    assert not host_ctx.ssh.temp_files
    assert host_ctx.shared.master_certs is None


def test_first_master_generates_certs(cluster, host_ctx_factory,
                                      master_cert_files):
    host_ctx = host_ctx_factory(cluster, cluster.master_hosts[0])

    assert InstallMaster().run(host_ctx) is True

    ssh = host_ctx.ssh
    init = ssh.commands_like("sudo kubeadm init")
    assert len(init) == 1
    assert init[0].startswith(
        "sudo kubeadm init --ignore-preflight-errors all --skip-token-print "
        "--config /tmp/kubeadm.cfg.")
    # nothing pushed before kubeadm generated the CA
    assert not writes(ssh)
    assert ssh.commands_like(f"sudo cat {KUBE_PKI_DIR}/")

    certs = host_ctx.shared.master_certs
    assert list(certs) == list(SHARED_CERT_FILES)
    for name in SHARED_CERT_FILES:
        assert certs[name] == master_cert_files[name].encode()


def test_kubeadm_config_is_uploaded_and_removed(cluster, host_ctx_factory):
    host = cluster.master_hosts[0]
    uploaded = {}

    def fake_init(ssh, cmd):
        path = cmd.split("--config ")[1]
        uploaded[path] = ssh.files[path]
        ssh.files[ADMIN_CONF] = "config"
        for name in SHARED_CERT_FILES:
            ssh.files[f"{KUBE_PKI_DIR}/{name}"] = "x"
        return 0

    host_ctx = host_ctx_factory(cluster, host,
                                handlers={"sudo kubeadm init": fake_init})
    with pytest.raises(ContextError):
        InstallMaster().run(host_ctx)

    assert len(uploaded) == 1
    document = yaml.safe_load(list(uploaded.values())[0])
    assert document['kind'] == 'MasterConfiguration'
    assert document['nodeName'] == host.node_name
    assert not host_ctx.ssh.temp_files


def test_second_master_reuses_certs(cluster, host_ctx_factory,
                                    master_cert_files, other_cert_files):
    first, second = cluster.master_hosts
    InstallMaster().run(host_ctx_factory(cluster, first))

    # kubeadm on the second host would generate different certificates
    host_ctx = host_ctx_factory(
        cluster, second,
        handlers={"sudo kubeadm init": kubeadm_init(other_cert_files)})

    assert InstallMaster().run(host_ctx) is True

    ssh = host_ctx.ssh
    for name in SHARED_CERT_FILES:
        path = f"{KUBE_PKI_DIR}/{name}"
        assert ssh.files[path] == master_cert_files[name]
        assert ssh.modes[path] == "0400"
        assert f"sudo chmod 0400 {path}" in ssh.commands

    pushed = ssh.commands.index(f"sudo mkdir -p {KUBE_PKI_DIR}")
    init = ssh.commands.index(ssh.commands_like("sudo kubeadm init")[0])
    assert pushed < init
    assert not ssh.commands_like("sudo cat")
    assert host_ctx.shared.master_certs["ca.crt"] == \
        master_cert_files["ca.crt"].encode()


def test_single_generation_across_masters(host_ctx_factory):
    config = ClusterConfig.from_dict({"hosts": [
        {"address": f"192.0.2.{i}", "role": "master"} for i in range(1, 6)]})

    contexts = [host_ctx_factory(config, host)
                for host in config.master_hosts]
    for host_ctx in contexts:
        assert InstallMaster().run(host_ctx) is True

    generated = [ctx for ctx in contexts if ctx.ssh.commands_like("sudo cat")]
    reused = [ctx for ctx in contexts
              if ctx.ssh.commands_like(f"sudo mkdir -p {KUBE_PKI_DIR}")]
    assert generated == contexts[:1]
    assert reused == contexts[1:]
    assert set(contexts[0].shared.master_certs) == set(SHARED_CERT_FILES)


def test_failed_init_removes_temp_file(cluster, host_ctx_factory):
    host_ctx = host_ctx_factory(
        cluster, cluster.master_hosts[0],
        handlers={"sudo kubeadm init": lambda ssh, cmd: 1})

    with pytest.raises(RemoteCommandError):
        InstallMaster().run(host_ctx)

    assert not host_ctx.ssh.temp_files
    assert host_ctx.ssh.commands_like("rm -f /tmp/kubeadm.cfg.")
    assert host_ctx.shared.master_certs is None


def test_incomplete_certs_are_not_shared(cluster, host_ctx_factory):
    def fake_init(ssh, cmd):  # pylint: disable=unused-argument
        ssh.files[ADMIN_CONF] = "config"
        ssh.files[f"{KUBE_PKI_DIR}/ca.crt"] = "cert"
        return 0

    host_ctx = host_ctx_factory(cluster, cluster.master_hosts[0],
                                handlers={"sudo kubeadm init": fake_init})

    with pytest.raises(RemoteCommandError):
        InstallMaster().run(host_ctx)

    assert host_ctx.shared.master_certs is None
