"""
Collaborators of the convergence controller. Concrete implementations live in
:mod:`~kcluster.aws`, :mod:`~kcluster.kube` and :mod:`~kcluster.deploy`;
tests substitute in-memory fakes.

Implementations must raise :class:`.BackendError` for failed calls so that
polling can tell "backend down" apart from a programming error.
"""
from abc import ABC, abstractmethod
from collections import namedtuple

Credentials = namedtuple('Credentials', ['access_key', 'secret_key', 'token'])


class ProvisioningBackend(ABC):

    @abstractmethod
    def create_cluster(self, spec):
        """Register the cluster described by ``spec``; return a handle."""

    @abstractmethod
    def update_cluster(self, handle):
        """Apply the registered cluster, launching its instances."""

    @abstractmethod
    def describe_instances(self, tag_filter):
        """
        Return the live :class:`.Instance` objects whose tags contain every
        key/value pair of ``tag_filter``.
        """

    @abstractmethod
    def authorize_ingress(self, group_id, rule):
        """Allow the :class:`.IngressRule` on security group ``group_id``."""


class ClusterStateBackend(ABC):

    @abstractmethod
    def list_nodes(self):
        """Return a list of :class:`.NodeStatus`."""


class DeploymentBackend(ABC):

    @abstractmethod
    def deploy_application(self, bucket, credentials, region, storage_size,
                           config):
        """Deploy the data platform onto a converged cluster."""


class CredentialProvider(ABC):

    @abstractmethod
    def get_credentials(self):
        """Return :class:`Credentials` for the deployment."""
