"""
Helpers shared by the phases
"""
import os
import shlex

from pharos.util.util import read_file

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SCRIPTS_DIR = os.path.join(BASE_DIR, 'scripts')
RESOURCES_DIR = os.path.join(BASE_DIR, 'resources')


def script_path(*path):
    """the local path of a script shipped with pharos"""
    return os.path.join(SCRIPTS_DIR, *path)


def resource_path(*path):
    """the local path of a resource file shipped with pharos"""
    return os.path.join(RESOURCES_DIR, *path)


def read_resource(*path):
    """the content of a resource file as text"""
    return read_file(resource_path(*path), mode="r")


def exec_script(ssh, script, **env):
    """
    Run a script from ``pharos/scripts`` on the host as root.

    The script is streamed over stdin, env becomes its environment.

    Args:
        ssh (:class:`pharos.ssh.SSHClient`): the host session
        script (str): file name under pharos/scripts
        env: environment variables for the script

    Raises:
        :class:`pharos.ssh.RemoteCommandError` if the script fails
    """
    content = read_file(script_path(script), mode="r")
    env_args = " ".join(
        "%s=%s" % (key, shlex.quote(str(value)))
        for key, value in sorted(env.items()))
    cmd = "sudo env %s bash -s" % env_args if env_args else "sudo bash -s"
    return ssh.run(cmd, stdin=content)
