"""
`kcluster` provisions a Kubernetes cluster on AWS with kops, waits for it to
converge to a healthy steady state, and deploys Pachyderm on top of it.

:class:`~.convergence.ClusterConvergenceController` is the primary interface
when used procedurally within a Python script.

Command line tools include:

* ``kcluster`` (:func:`.__exec__.main`)
* ``kcluster-nodes`` (:func:`.__exec__.nodes`)
"""

import os
import logging

__title__ = 'kcluster'
__ver__ = '0.1.0'

# Add logging (defaults to null, but can be picked up by any logger)
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Identify user's home directory, create hidden folder
_OUTDIR = os.path.join(os.path.expanduser('~'), '.kcluster')
os.makedirs(_OUTDIR, exist_ok=True)


def _set_data(fn):
    """
    Return path to save a file to hidden ``.kcluster`` folder in user directory.

    :param fn: The file name of the output (cluster records are named after
        the cluster).
    """
    return os.path.join(_OUTDIR, fn)


from .errors import ConvergenceError, Timeout, UnexpectedTopology, \
    SecurityGroupNotFound, BackendError
from .models import ClusterSpec, Instance, NodeStatus, ClusterObservation, \
    IngressRule, Endpoint, ConvergenceResult, Stage, DEFAULT_RULES
from .polling import poll
from .convergence import ClusterConvergenceController
