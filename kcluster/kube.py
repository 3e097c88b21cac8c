"""
:mod:`~kcluster.kube` reads node state from the cluster's Kubernetes API.
"""
from logging import getLogger

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from .backends import ClusterStateBackend
from .errors import BackendError
from .models import NodeStatus, MASTER, NODE, READY, NOT_READY, UNKNOWN

_MASTER_LABELS = ('node-role.kubernetes.io/master',
                  'node-role.kubernetes.io/control-plane')
_NODE_LABEL = 'node-role.kubernetes.io/node'
_LEGACY_ROLE_LABEL = 'kubernetes.io/role'


def node_role(labels):
    labels = labels or {}
    if any(label in labels for label in _MASTER_LABELS):
        return MASTER
    legacy = labels.get(_LEGACY_ROLE_LABEL)
    if legacy in (MASTER, NODE):
        return legacy
    if _NODE_LABEL in labels:
        return NODE
    return UNKNOWN


def node_readiness(conditions):
    for condition in conditions or []:
        if condition.type == 'Ready':
            return READY if condition.status == 'True' else NOT_READY
    return UNKNOWN


def to_node_status(node):
    """Convert a V1Node to a :class:`.NodeStatus`."""
    conditions = node.status.conditions if node.status else None
    return NodeStatus(name=node.metadata.name,
                      role=node_role(node.metadata.labels),
                      readiness=node_readiness(conditions))


class KubeNodeLister(ClusterStateBackend):
    """
    Lists nodes through ``CoreV1Api.list_node``.

    The kubeconfig is loaded on first use, since kops only writes it once the
    cluster has been applied.

    :param context: kubeconfig context to use (kops names it after the
        cluster); defaults to the current context
    :param config_file: kubeconfig path; defaults to ``~/.kube/config``
    :param api: A ready ``CoreV1Api``, skipping kubeconfig loading
    """

    def __init__(self, context=None, config_file=None, api=None):
        self.context = context
        self.config_file = config_file
        self.api = api
        self._log = getLogger(__name__)

    def _core_v1(self):
        if self.api is None:
            try:
                api_client = config.new_client_from_config(
                    config_file=self.config_file, context=self.context)
            except (config.ConfigException, OSError) as err:
                raise BackendError('Could not load kubeconfig: %s'
                                   % err) from err
            self.api = client.CoreV1Api(api_client)
        return self.api

    def list_nodes(self):
        api = self._core_v1()
        try:
            nodes = api.list_node()
        except (ApiException, HTTPError) as err:
            raise BackendError('Listing nodes failed: %s' % err) from err
        statuses = [to_node_status(n) for n in nodes.items]
        self._log.debug('Nodes: %s', ', '.join(
            '%s(%s,%s)' % s for s in statuses))
        return statuses
