import pytest

from kcluster import ClusterSpec, ClusterConvergenceController, Instance, \
    NodeStatus
from kcluster.backends import ProvisioningBackend, ClusterStateBackend
from kcluster.convergence import CLUSTER_TAG, MASTER_ROLE_TAG

NAME = 'abcd1234-pachydermcluster.kubernetes.com'


class FakeClock:
    """Clock whose time only moves when something sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class _Scripted:
    """Replays ``script`` one item per call, then repeats ``default``.
    Exception items are raised instead of returned."""

    def __init__(self, default=()):
        self.script = []
        self.default = default
        self.calls = 0

    def _next(self):
        self.calls += 1
        item = self.script.pop(0) if self.script else self.default
        if isinstance(item, Exception):
            raise item
        return list(item)


class FakeProvisioner(ProvisioningBackend):

    def __init__(self):
        self.instances = _Scripted()
        self.created = []
        self.updated = []
        self.filters = []
        self.authorized = []

    @property
    def describe_calls(self):
        return self.instances.calls

    def create_cluster(self, spec):
        self.created.append(spec)
        return spec.name

    def update_cluster(self, handle):
        self.updated.append(handle)

    def describe_instances(self, tag_filter):
        self.filters.append(tag_filter)
        return self.instances._next()

    def authorize_ingress(self, group_id, rule):
        self.authorized.append((group_id, rule))


class FakeStateBackend(ClusterStateBackend):

    def __init__(self):
        self.nodes = _Scripted()

    @property
    def list_calls(self):
        return self.nodes.calls

    def list_nodes(self):
        return self.nodes._next()


def master(dns='ec2-1-2-3-4.compute-1.amazonaws.com', instance_id='i-master',
           groups=(('sg-master', 'masters.' + NAME),)):
    return Instance(instance_id=instance_id,
                    tags={CLUSTER_TAG: NAME, MASTER_ROLE_TAG: '1'},
                    public_dns=dns, security_groups=tuple(groups))


def cluster_nodes(workers_ready, workers_not_ready=0, masters=1,
                  master_ready=True):
    nodes = [NodeStatus('master-%d' % i, 'master',
                        'Ready' if master_ready else 'NotReady')
             for i in range(masters)]
    nodes += [NodeStatus('node-%d' % i, 'node', 'Ready')
              for i in range(workers_ready)]
    nodes += [NodeStatus('node-nr-%d' % i, 'node', 'NotReady')
              for i in range(workers_not_ready)]
    return nodes


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def spec():
    return ClusterSpec.create(name=NAME, node_count=3, state_store='store')


@pytest.fixture
def provisioner():
    return FakeProvisioner()


@pytest.fixture
def state_backend():
    return FakeStateBackend()


@pytest.fixture
def controller(spec, provisioner, state_backend, clock):
    return ClusterConvergenceController(
        spec, provisioner, state_backend, poll_interval=1, master_timeout=30,
        nodes_timeout=60, clock=clock, sleep=clock.sleep)


@pytest.fixture
def make_master():
    return master


@pytest.fixture
def make_nodes():
    return cluster_nodes
