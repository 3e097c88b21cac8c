"""
:mod:`~kcluster.models` holds the immutable values passed between the
controller and its backends. Observations are rebuilt on every poll and never
mutated.
"""
import json
import uuid
import random
from enum import Enum
from collections import namedtuple
from logging import getLogger

MASTER = 'master'
NODE = 'node'
READY = 'Ready'
NOT_READY = 'NotReady'
UNKNOWN = 'Unknown'

DEFAULT_REGION = 'us-east-1'
DEFAULT_ZONE = 'us-east-1a'
DEFAULT_NODE_COUNT = 3
DEFAULT_SIZE = 'r4.xlarge'
DEFAULT_DNS_ZONE = 'kubernetes.com'


def _generate_name(dns_zone=DEFAULT_DNS_ZONE):
    return '{0}-pachydermcluster.{1}'.format(uuid.uuid4().hex[:8], dns_zone)


def _generate_state_store():
    return 'k8scom-state-store-pachyderm-{0}'.format(random.randint(0, 32767))


_ClusterSpec = namedtuple('ClusterSpec', [
    'name', 'node_count', 'node_size', 'master_size', 'zone', 'region',
    'state_store', 'dns_zone', 'state_store_generated'
])


class ClusterSpec(_ClusterSpec):
    """Desired state of one provisioning run.

    Use :meth:`create` rather than the constructor so that the cluster name
    and state store are generated when not supplied. The spec cannot change
    once creation begins; derive a new one with ``_replace`` instead.
    """
    __slots__ = ()

    @classmethod
    def create(cls, name=None, node_count=DEFAULT_NODE_COUNT,
               node_size=DEFAULT_SIZE, master_size=None, zone=DEFAULT_ZONE,
               region=DEFAULT_REGION, state_store=None,
               dns_zone=DEFAULT_DNS_ZONE, state_store_generated=None):
        """Build a spec, generating the cluster name and state store if absent.

        :param name: Cluster name, e.g. ``abcd1234-pachydermcluster.kubernetes.com``
        :param node_count: Number of worker nodes (the master is extra)
        :param node_size: EC2 instance type for workers
        :param master_size: EC2 instance type for the master (defaults to
            ``node_size``)
        :param zone: Availability zone for nodes and master
        :param region: AWS region
        :param state_store: Name of an existing kops state store bucket; a
            new name is generated when omitted
        :param dns_zone: DNS zone the cluster name lives in
        """
        node_count = int(node_count)
        if node_count < 0:
            raise ValueError('node_count must be >= 0, got %d' % node_count)
        if state_store_generated is None:
            state_store_generated = not state_store
        return cls(
            name=name or _generate_name(dns_zone),
            node_count=node_count,
            node_size=node_size,
            master_size=master_size or node_size,
            zone=zone,
            region=region,
            state_store=state_store or _generate_state_store(),
            dns_zone=dns_zone,
            state_store_generated=bool(state_store_generated),
        )

    @property
    def expected_nodes(self):
        """Nodes in a converged cluster: every worker plus the master."""
        return self.node_count + 1

    @property
    def state_store_url(self):
        return 's3://' + self.state_store

    def write_config(self, fn):
        """Write out the spec as JSON.

        :param fn: The filename to be written, will overwrite previous file
        """
        getLogger(__name__).debug('Writing cluster spec %s to %s', self.name, fn)
        with open(fn, 'w') as out:
            json.dump(self._asdict(), out, indent=2, sort_keys=True)

    @classmethod
    def from_config(cls, fn, **kwargs):
        """
        Use a JSON configuration file to create a spec.

        :param fn: The filename containing spec data
        :param kwargs: Alternate or supplement configuration; will override
            the content of fn. ``None`` values are ignored so that unset
            command line flags do not mask the file. A ``state_store``
            override names an existing store, so it is not created again.
        """
        with open(fn, 'r') as src:
            dic = json.load(src)
        overrides = {k: v for k, v in kwargs.items() if v is not None}
        if 'state_store' in overrides:
            overrides.setdefault('state_store_generated', False)
        dic.update(overrides)
        return cls.create(**dic)


class Instance(namedtuple('Instance', ['instance_id', 'tags', 'public_dns',
                                       'security_groups'])):
    """A cloud instance as reported by the provisioning backend.

    ``security_groups`` is a tuple of ``(group_id, group_name)`` pairs.
    """
    __slots__ = ()

    def group_ids(self, name=None):
        return tuple(gid for gid, gname in self.security_groups
                     if name is None or gname == name)


class NodeStatus(namedtuple('NodeStatus', ['name', 'role', 'readiness'])):
    __slots__ = ()

    @property
    def is_master(self):
        return self.role == MASTER

    @property
    def is_ready(self):
        return self.readiness == READY


class ClusterObservation(namedtuple('ClusterObservation',
                                    ['master_dns', 'nodes', 'node_count'])):
    """Point-in-time snapshot of the cluster."""
    __slots__ = ()

    @classmethod
    def from_nodes(cls, nodes, master_dns=None):
        nodes = tuple(nodes)
        return cls(master_dns=master_dns, nodes=nodes, node_count=len(nodes))

    @property
    def master_count(self):
        return sum(1 for n in self.nodes if n.is_master)

    @property
    def ready_count(self):
        return sum(1 for n in self.nodes if n.is_ready)


IngressRule = namedtuple('IngressRule', ['protocol', 'port', 'cidr'])

# Kubernetes API and direct Pachyderm access
DEFAULT_RULES = (
    IngressRule('tcp', 8080, '0.0.0.0/0'),
    IngressRule('tcp', 30650, '0.0.0.0/0'),
)

Endpoint = namedtuple('Endpoint', ['dns_name', 'instance_id'])


class Stage(Enum):
    REQUESTED = 'Requested'
    WAITING_FOR_MASTER = 'WaitingForMaster'
    MASTER_FOUND = 'MasterFound'
    INGRESS_OPENED = 'IngressOpened'
    WAITING_FOR_NODES_READY = 'WaitingForNodesReady'
    CONVERGED = 'Converged'
    FAILED = 'Failed'


class ConvergenceResult(namedtuple('ConvergenceResult',
                                   ['endpoint', 'error', 'failed_stage'])):
    """Terminal outcome of :meth:`.ClusterConvergenceController.converge`.

    Exactly one of ``endpoint`` (converged) and ``error`` (failed) is set.
    """
    __slots__ = ()

    @classmethod
    def converged(cls, endpoint):
        return cls(endpoint=endpoint, error=None, failed_stage=None)

    @classmethod
    def failed(cls, error, stage):
        return cls(endpoint=None, error=error, failed_stage=stage)

    @property
    def is_converged(self):
        return self.error is None

    @property
    def reason(self):
        """'converged' or the failure reason of the error class."""
        if self.error is None:
            return 'converged'
        return self.error.reason

    def __str__(self):
        if self.is_converged:
            return 'Converged({0})'.format(self.endpoint.dns_name)
        return 'Failed({0} during {1}: {2})'.format(
            self.reason, self.failed_stage.value, self.error)
