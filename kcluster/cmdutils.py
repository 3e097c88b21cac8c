"""
:mod:`~kcluster.cmdutils` collects the functions used to drive the external
command line tools (``kops``, ``pachctl``) the backends are built on.
"""
import shutil
import subprocess
from logging import getLogger

from .errors import BackendError


def require_tool(name):
    """Return the path of executable ``name``, raising if it is not installed.

    :param name: The executable to look for on ``PATH``
    """
    path = shutil.which(name)
    if path is None:
        raise BackendError('%s not found on path' % name)
    return path


def run_cmd(args, redact=()):
    """Run a command, treat execution failure as backend failure.

    :param args: List of program arguments, program first
    :param redact: Arguments to hide from the logs (secrets)
    :return: List of stdout lines
    """
    log = getLogger(__name__)
    shown = ['****' if arg in redact else arg for arg in args]
    log.debug('Issuing "%s"', ' '.join(shown))
    try:
        proc = subprocess.run(args, stdout=subprocess.PIPE,
                              stderr=subprocess.PIPE, universal_newlines=True)
    except OSError as err:
        raise BackendError('Could not run %s: %s' % (args[0], err)) from err
    lines = proc.stdout.splitlines()
    for line in lines:
        log.debug(line)
    if proc.returncode:
        text = proc.stderr.strip()
        log.error(text)
        raise BackendError('%s exited with status %d: %s'
                           % (args[0], proc.returncode, text))
    return lines
