"""
:mod:`~kcluster.convergence` drives a freshly requested cluster to its steady
state: master reachable, ingress open, every node ``Ready``.
"""
import time
from logging import getLogger

from .errors import ConvergenceError, UnexpectedTopology, SecurityGroupNotFound
from .models import ClusterObservation, ConvergenceResult, Endpoint, Stage, \
    DEFAULT_RULES
from .polling import poll

# Tags kops puts on every master instance
CLUSTER_TAG = 'KubernetesCluster'
MASTER_ROLE_TAG = 'k8s.io/role/master'


def master_filter(spec):
    """Tag filter selecting the master instances of ``spec``'s cluster."""
    return {CLUSTER_TAG: spec.name, MASTER_ROLE_TAG: '1'}


def master_group_name(spec):
    return 'masters.' + spec.name


def select_master_endpoint(instances):
    """
    Return the :class:`.Endpoint` of the single master with a public DNS name,
    or ``None`` while there is no such master (or more than one).
    """
    reachable = [i for i in instances if i.public_dns]
    if len(reachable) != 1:
        return None
    return Endpoint(dns_name=reachable[0].public_dns,
                    instance_id=reachable[0].instance_id)


def nodes_converged(spec, observation):
    """
    Decide from one observation whether every expected node is ``Ready``.

    :raises UnexpectedTopology: The listing shows more than one master
    """
    masters = observation.master_count
    if masters > 1:
        raise UnexpectedTopology(
            'Cluster %s reports %d master nodes: %s' % (
                spec.name, masters,
                ', '.join(n.name for n in observation.nodes if n.is_master)))
    return masters == 1 and observation.ready_count == spec.expected_nodes


class ClusterConvergenceController:
    """Drives one cluster from creation to a converged steady state.

    Each ``await_*`` step is a bounded poll against the backends: one backend
    call per attempt, ``poll_interval`` seconds apart, giving up after the
    step's timeout. :meth:`converge` runs the steps in order and folds the
    outcome into a single :class:`.ConvergenceResult`.

    A controller covers one run. To start over, build a new controller.
    """

    def __init__(self, spec, provisioner, state_backend, poll_interval=1,
                 master_timeout=600, nodes_timeout=1200, rules=DEFAULT_RULES,
                 on_master_found=None, clock=time.monotonic,
                 sleep=time.sleep):
        """
        :param spec: The :class:`.ClusterSpec` to converge to
        :param provisioner: A :class:`.ProvisioningBackend`
        :param state_backend: A :class:`.ClusterStateBackend`
        :param poll_interval: Seconds between backend calls while waiting
        :param master_timeout: Seconds to wait for the master endpoint
        :param nodes_timeout: Seconds to wait for every node to be ready
        :param rules: :class:`.IngressRule` objects to open on the master's
            security group
        :param on_master_found: Callable run with the master :class:`.Endpoint`
            once it is found, before ingress is opened and nodes are polled;
            it may raise a :class:`.ConvergenceError` to fail the run
        :param clock: Monotonic clock used for the timeouts
        :param sleep: Function used to wait between attempts
        """
        self.spec = spec
        self.provisioner = provisioner
        self.state_backend = state_backend
        self.poll_interval = poll_interval
        self.master_timeout = master_timeout
        self.nodes_timeout = nodes_timeout
        self.rules = tuple(rules)
        self.on_master_found = on_master_found
        self.clock = clock
        self.sleep = sleep
        self.stage = Stage.REQUESTED
        self.master_endpoint = None
        self.master_instances = None
        self.observation = None
        self.result = None
        self._log = getLogger(__name__)

    def _set_stage(self, stage):
        self._log.info('Cluster %s: %s -> %s', self.spec.name,
                       self.stage.value, stage.value)
        self.stage = stage

    def _poll(self, probe, timeout, what):
        return poll(probe, self.poll_interval, timeout, clock=self.clock,
                    sleep=self.sleep, what=what)

    def await_master_endpoint(self, timeout=None):
        """
        Block until the cluster's master has a public DNS name.

        Returns the cached endpoint without querying once one has been found.

        :param timeout: Override of ``master_timeout``
        :raises Timeout: No endpoint appeared within the bound
        :raises BackendError: The backend was still failing at the bound
        """
        if self.master_endpoint is not None:
            return self.master_endpoint
        tag_filter = master_filter(self.spec)

        def probe():
            instances = self.provisioner.describe_instances(tag_filter)
            endpoint = select_master_endpoint(instances)
            if endpoint is not None:
                self.master_instances = tuple(instances)
            return endpoint

        if timeout is None:
            timeout = self.master_timeout
        self._log.info('Waiting for master of %s (up to %ss)', self.spec.name,
                       timeout)
        self.master_endpoint = self._poll(probe, timeout, 'master endpoint')
        self._log.info('Master of %s is up and lives at %s', self.spec.name,
                       self.master_endpoint.dns_name)
        return self.master_endpoint

    def await_all_nodes_ready(self, timeout=None):
        """
        Block until exactly one master is listed and ``node_count + 1`` nodes
        are ``Ready``. Returns the converged :class:`.ClusterObservation`.

        :param timeout: Override of ``nodes_timeout``
        :raises UnexpectedTopology: A listing showed more than one master
        :raises Timeout: The nodes did not all become ready within the bound
        :raises BackendError: Listing nodes was still failing at the bound
        """
        master_dns = self.master_endpoint.dns_name \
            if self.master_endpoint else None

        def probe():
            observation = ClusterObservation.from_nodes(
                self.state_backend.list_nodes(), master_dns=master_dns)
            self.observation = observation
            self._log.debug('total %d, ready %d', self.spec.expected_nodes,
                            observation.ready_count)
            if nodes_converged(self.spec, observation):
                return observation
            return None

        if timeout is None:
            timeout = self.nodes_timeout
        self._log.info('Waiting for %d nodes to come online (up to %ss)',
                       self.spec.expected_nodes, timeout)
        return self._poll(probe, timeout, 'nodes ready')

    def _master_group_ids(self):
        instances = self.master_instances
        if instances is None:
            instances = self.provisioner.describe_instances(
                master_filter(self.spec))
        name = master_group_name(self.spec)
        return [gid for instance in instances
                for gid in instance.group_ids(name)]

    def open_required_ingress(self, rules=None, lookup=None):
        """
        Authorize every ingress rule on the master's security group.

        :param rules: Override of the controller's rules
        :param lookup: Zero-argument callable returning candidate security
            group ids. Defaults to the groups named ``masters.<cluster>`` on
            the master instances found by :meth:`await_master_endpoint`.
        :raises SecurityGroupNotFound: Zero or several distinct groups matched
        :return: The id of the group the rules were applied to
        """
        if rules is None:
            rules = self.rules
        if lookup is None:
            lookup = self._master_group_ids
        groups = sorted(set(lookup()))
        if len(groups) != 1:
            raise SecurityGroupNotFound(
                'Expected exactly one security group for the master of %s, '
                'found %d: %s' % (self.spec.name, len(groups), groups))
        group_id = groups[0]
        for rule in rules:
            self._log.info('Opening %s/%s from %s on %s', rule.protocol,
                           rule.port, rule.cidr, group_id)
            self.provisioner.authorize_ingress(group_id, rule)
        return group_id

    def converge(self):
        """
        Run the whole flow: create, wait for master, open ingress, wait for
        nodes. Returns the :class:`.ConvergenceResult`; a finished controller
        returns its result again without touching the backends.
        """
        if self.result is not None:
            return self.result
        try:
            self._log.info('Creating cluster %s', self.spec.name)
            handle = self.provisioner.create_cluster(self.spec)
            self.provisioner.update_cluster(handle)
            self._set_stage(Stage.WAITING_FOR_MASTER)
            endpoint = self.await_master_endpoint()
            self._set_stage(Stage.MASTER_FOUND)
            if self.on_master_found is not None:
                self.on_master_found(endpoint)
            self.open_required_ingress()
            self._set_stage(Stage.INGRESS_OPENED)
            self._set_stage(Stage.WAITING_FOR_NODES_READY)
            self.await_all_nodes_ready()
        except ConvergenceError as err:
            failed_stage = self.stage
            self._set_stage(Stage.FAILED)
            self.result = ConvergenceResult.failed(err, failed_stage)
            self._log.error('Cluster %s failed: %s', self.spec.name,
                            self.result)
            return self.result
        self._set_stage(Stage.CONVERGED)
        self.result = ConvergenceResult.converged(endpoint)
        return self.result
