"""
Test pharos.ssh with a mocked paramiko client
"""
#  pylint: disable=redefined-outer-name
import socket
from unittest import mock

import paramiko
import pytest

from pharos.config import Host
from pharos.ssh import (SSHClient, SSHConnectionError, RemoteCommandError,
                        CommandResult)


HOST = Host(address="192.0.2.1", user="core", ssh_key_path="/keys/id_rsa",
            ssh_port=2222, roles=frozenset(["master"]))


def channel_file(data=b"", status=0):
    stream = mock.Mock()
    stream.read.return_value = data
    stream.channel.recv_exit_status.return_value = status
    stream.channel.exit_status_ready.return_value = True
    return stream


@pytest.fixture
def paramiko_client():
    client = mock.MagicMock(spec=paramiko.SSHClient)
    client.exec_command.return_value = (
        mock.Mock(), channel_file(b"hello\n"), channel_file())
    return client


@pytest.fixture
def ssh(paramiko_client):
    return SSHClient(HOST, client_factory=lambda: paramiko_client).connect()


def test_connect(paramiko_client):
    ssh = SSHClient(HOST, connect_timeout=5,
                    client_factory=lambda: paramiko_client)
    ssh.connect()

    assert ssh.connected
    paramiko_client.connect.assert_called_once_with(
        hostname="192.0.2.1", port=2222, username="core",
        key_filename="/keys/id_rsa", timeout=5, allow_agent=True,
        look_for_keys=False)

    ssh.disconnect()
    assert not ssh.connected
    paramiko_client.close.assert_called_once_with()


@pytest.mark.parametrize("error", [
    paramiko.AuthenticationException("denied"),
    socket.timeout("timed out"),
    ConnectionRefusedError("refused"),
])
def test_connect_fails(paramiko_client, error):
    paramiko_client.connect.side_effect = error
    ssh = SSHClient(HOST, client_factory=lambda: paramiko_client)

    with pytest.raises(SSHConnectionError, match="192.0.2.1"):
        ssh.connect()

    assert not ssh.connected
    paramiko_client.close.assert_called_once_with()


def test_context_manager(paramiko_client):
    with SSHClient(HOST, client_factory=lambda: paramiko_client) as ssh:
        assert ssh.connected

    assert not ssh.connected


def test_exec_without_connection():
    with pytest.raises(SSHConnectionError):
        SSHClient(HOST).exec("true")


def test_exec(ssh, paramiko_client):
    result = ssh.exec("uname -a")

    assert result == CommandResult("uname -a", 0, "hello\n", "")
    assert result.success
    paramiko_client.exec_command.assert_called_once_with("uname -a")


def test_exec_with_stdin(ssh, paramiko_client):
    stdin = mock.Mock()
    paramiko_client.exec_command.return_value = (
        stdin, channel_file(), channel_file())

    ssh.exec("bash -s", stdin="echo hi")

    stdin.write.assert_called_once_with("echo hi")
    stdin.channel.shutdown_write.assert_called_once_with()


def test_run_fails(ssh, paramiko_client):
    paramiko_client.exec_command.return_value = (
        mock.Mock(), channel_file(b"", status=2), channel_file(b"no such file"))

    assert not ssh.exec("cat /nope").success
    with pytest.raises(RemoteCommandError) as err:
        ssh.run("cat /nope")

    assert err.value.result.exit_status == 2
    assert "no such file" in str(err.value)


def test_exec_reads_both_streams_while_running(ssh, paramiko_client,
                                              monkeypatch):
    monkeypatch.setattr("pharos.ssh.time.sleep", lambda seconds: None)
    out, err = channel_file(b"done\n"), channel_file(b"warning 2\n")
    out.channel.exit_status_ready.side_effect = [False, False, True]
    out.channel.recv_ready.side_effect = [True, False]
    out.channel.recv.return_value = b"step 1\n"
    out.channel.recv_stderr_ready.side_effect = [True, False]
    out.channel.recv_stderr.return_value = b"warning 1\n"
    paramiko_client.exec_command.return_value = (mock.Mock(), out, err)

    result = ssh.exec("kubeadm upgrade plan")

    assert result.stdout == "step 1\ndone\n"
    assert result.stderr == "warning 1\nwarning 2\n"
    assert out.channel.exit_status_ready.call_count == 3


def test_exec_connection_lost(ssh, paramiko_client):
    paramiko_client.exec_command.side_effect = paramiko.SSHException("gone")

    with pytest.raises(SSHConnectionError):
        ssh.exec("true")


def test_upload(ssh, paramiko_client):
    sftp = paramiko_client.open_sftp.return_value
    remote = sftp.open.return_value.__enter__.return_value

    path = ssh.upload("content", prefix="kubeadm.cfg")

    assert path.startswith("/tmp/kubeadm.cfg.")
    sftp.open.assert_called_once_with(path, "wb")
    remote.write.assert_called_once_with(b"content")
    sftp.chmod.assert_called_once_with(path, 0o600)


def test_tempfile_is_removed_on_error(ssh, paramiko_client):
    with pytest.raises(RuntimeError):
        with ssh.tempfile("content", prefix="kubeadm.cfg") as path:
            raise RuntimeError("boom")

    paramiko_client.exec_command.assert_called_once_with(f"rm -f {path}")


def test_remote_file(ssh, paramiko_client):
    remote = ssh.file("/etc/kubernetes/admin.conf")

    assert remote.exist()
    assert remote.read() == "hello\n"
    remote.chmod("0400")

    commands = [c[0][0] for c in paramiko_client.exec_command.call_args_list]
    assert commands == [
        "sudo test -e /etc/kubernetes/admin.conf",
        "sudo cat /etc/kubernetes/admin.conf",
        "sudo chmod 0400 /etc/kubernetes/admin.conf",
    ]


def test_remote_file_write(ssh, paramiko_client):
    ssh.file("/etc/pharos/audit/policy.yml").write("policy", mode="0600")

    commands = [c[0][0] for c in paramiko_client.exec_command.call_args_list]
    assert len(commands) == 2
    assert commands[0].startswith("sudo install -m 0600 -o root -g root "
                                  "/tmp/pharos.")
    assert commands[0].endswith(" /etc/pharos/audit/policy.yml")
    assert commands[1].startswith("rm -f /tmp/pharos.")
