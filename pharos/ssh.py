"""
ssh.py
======

Run commands and move files on a cluster host over SSH.

Commands are blocking. Any transport problem raises
:class:`SSHConnectionError`, :meth:`SSHClient.run` raises
:class:`RemoteCommandError` for a non-zero exit status. Nothing is retried.
"""
import posixpath
import shlex
import socket
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass

import paramiko

from pharos.util.logger import Logger

LOGGER = Logger(__name__)

TMP_DIR = "/tmp"
BUFSIZE = 4096
POLL_INTERVAL = 0.1


class SSHError(Exception):
    """Base class of all remote execution errors"""


class SSHConnectionError(SSHError):
    """The host could not be reached or the session broke down"""


class RemoteCommandError(SSHError):
    """
    A remote command exited with a non-zero status.

    Args:
        result (CommandResult): the failed command
    """

    def __init__(self, result):
        self.result = result
        super().__init__(
            "command '%s' failed with exit status %d: %s" % (
                result.command, result.exit_status,
                (result.stderr or result.stdout).strip()))


@dataclass(frozen=True)
class CommandResult:
    command: str
    exit_status: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self):
        return self.exit_status == 0


class RemoteFile:
    """
    A file on the remote host. Reading and writing use sudo, since most
    files pharos touches are owned by root.

    Args:
        ssh (SSHClient): the session to use
        path (str): absolute path on the host
    """

    def __init__(self, ssh, path):
        self.ssh = ssh
        self.path = path

    def exist(self):
        return self.ssh.exec(f"sudo test -e {shlex.quote(self.path)}").success

    def read(self):
        """
        Returns:
            str: the content of the file
        """
        return self.ssh.run(f"sudo cat {shlex.quote(self.path)}").stdout

    def write(self, content, mode="0644"):
        """
        Upload to a temporary file and move it into place with sudo.
        """
        tmp_path = self.ssh.upload(content)
        try:
            self.ssh.run(
                "sudo install -m {mode} -o root -g root {src} {dst}".format(
                    mode=mode,
                    src=shlex.quote(tmp_path),
                    dst=shlex.quote(self.path)))
        finally:
            self.ssh.exec(f"rm -f {shlex.quote(tmp_path)}")

    def chmod(self, mode):
        self.ssh.run(f"sudo chmod {mode} {shlex.quote(self.path)}")

    def unlink(self):
        self.ssh.run(f"sudo rm -f {shlex.quote(self.path)}")

    def __str__(self):
        return self.path


class SSHClient:
    """
    An SSH session to one cluster host.

    Can be used as a context manager which connects on enter and
    disconnects on exit.

    Args:
        host (:class:`pharos.config.Host`): the host to connect to
        connect_timeout (float): seconds to wait for the connection
        client_factory: callable returning a ``paramiko.SSHClient``
    """

    def __init__(self, host, connect_timeout=30.0,
                 client_factory=paramiko.SSHClient):
        self.host = host
        self.connect_timeout = connect_timeout
        self._client_factory = client_factory
        self._client = None
        self._sftp = None

    def connect(self):
        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        LOGGER.debug("Connecting to %s@%s:%s ...", self.host.user,
                     self.host.address, self.host.ssh_port)
        try:
            client.connect(
                hostname=self.host.address,
                port=self.host.ssh_port,
                username=self.host.user,
                key_filename=self.host.ssh_key_path,
                timeout=self.connect_timeout,
                allow_agent=True,
                look_for_keys=self.host.ssh_key_path is None,
            )
        except (paramiko.SSHException, socket.error) as exc:
            client.close()
            raise SSHConnectionError(
                f"unable to connect to {self.host.address}: {exc}")

        self._client = client
        return self

    def disconnect(self):
        if self._sftp:
            self._sftp.close()
            self._sftp = None
        if self._client:
            self._client.close()
            self._client = None

    @property
    def connected(self):
        return self._client is not None

    def __enter__(self):
        if not self.connected:
            self.connect()
        return self

    def __exit__(self, *exc_info):
        self.disconnect()

    def _session(self):
        if not self._client:
            raise SSHConnectionError(f"not connected to {self.host.address}")
        return self._client

    def exec(self, cmd, stdin=None):
        """
        Run a command.

        Args:
            cmd (str): shell command line
            stdin (str): optional data written to the command's stdin

        Returns:
            :class:`CommandResult`, also when the command failed
        """
        client = self._session()
        LOGGER.debug("%s: $ %s", self.host.address, cmd)
        try:
            cmd_in, cmd_out, cmd_err = client.exec_command(cmd)
            if stdin is not None:
                cmd_in.write(stdin)
                cmd_in.flush()
            cmd_in.channel.shutdown_write()
            out, err = _read_streams(cmd_out, cmd_err)
            status = cmd_out.channel.recv_exit_status()
        except (paramiko.SSHException, socket.error) as exc:
            raise SSHConnectionError(
                f"lost connection to {self.host.address}: {exc}")

        result = CommandResult(cmd, status, out, err)
        if not result.success:
            LOGGER.debug("%s: exit status %d: %s", self.host.address,
                         status, err.strip())
        return result

    def run(self, cmd, stdin=None):
        """
        Run a command which must succeed.

        Raises:
            RemoteCommandError on a non-zero exit status
        """
        result = self.exec(cmd, stdin=stdin)
        if not result.success:
            raise RemoteCommandError(result)
        return result

    def file(self, path):
        return RemoteFile(self, path)

    def _sftp_session(self):
        if self._sftp is None:
            try:
                self._sftp = self._session().open_sftp()
            except (paramiko.SSHException, socket.error) as exc:
                raise SSHConnectionError(
                    f"unable to open sftp on {self.host.address}: {exc}")
        return self._sftp

    def upload(self, content, prefix="pharos", mode=0o600):
        """
        Write content to a new file in the remote temp directory.

        Returns:
            str: the path of the file on the host
        """
        if isinstance(content, str):
            content = content.encode()

        path = posixpath.join(TMP_DIR, f"{prefix}.{uuid.uuid4().hex}")
        sftp = self._sftp_session()
        try:
            with sftp.open(path, "wb") as fh:
                fh.write(content)
            sftp.chmod(path, mode)
        except (paramiko.SSHException, socket.error) as exc:
            raise SSHConnectionError(
                f"unable to upload to {self.host.address}:{path}: {exc}")

        return path

    @contextmanager
    def tempfile(self, content, prefix="pharos"):
        """
        A temporary file holding content, removed when the block exits,
        also when it raises.

        Example:
            >>> with ssh.tempfile(content=cfg, prefix="kubeadm.cfg") as path:
            ...     ssh.run(f"sudo kubeadm init --config {path}")
        """
        path = self.upload(content, prefix=prefix)
        try:
            yield path
        finally:
            self.exec(f"rm -f {shlex.quote(path)}")


def _read_streams(cmd_out, cmd_err):
    """
    Drain stdout and stderr of a running command together, so a command
    filling one of them never blocks on the other.
    """
    channel = cmd_out.channel
    out, err = [], []
    while not channel.exit_status_ready():
        ready = False
        if channel.recv_ready():
            out.append(channel.recv(BUFSIZE))
            ready = True
        if channel.recv_stderr_ready():
            err.append(channel.recv_stderr(BUFSIZE))
            ready = True
        if not ready:
            time.sleep(POLL_INTERVAL)

    out.append(cmd_out.read())
    err.append(cmd_err.read())
    return (b"".join(out).decode("utf-8", errors="replace"),
            b"".join(err).decode("utf-8", errors="replace"))
