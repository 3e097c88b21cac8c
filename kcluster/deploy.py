"""
:mod:`~kcluster.deploy` deploys Pachyderm onto a converged cluster.
"""
import random
from logging import getLogger

from .backends import DeploymentBackend
from .cmdutils import run_cmd

DEFAULT_STORAGE_SIZE = 100
DEFAULT_ETCD_NODES = 3


def generate_bucket_name():
    return '{0}-pachyderm-store'.format(random.randint(0, 32767))


class PachydermDeployer(DeploymentBackend):
    """Runs ``pachctl deploy amazon`` against the current kube context.

    :param pachctl: Path of the pachctl executable
    """

    def __init__(self, pachctl='pachctl'):
        self.pachctl = pachctl
        self._log = getLogger(__name__)

    def deploy_application(self, bucket, credentials, region, storage_size,
                           config):
        """
        :param bucket: S3 bucket backing Pachyderm's object store
        :param credentials: :class:`.Credentials` Pachyderm uses for the bucket
        :param region: AWS region of the bucket
        :param storage_size: Size in GB of the etcd volumes
        :param config: Extra options; ``etcd_nodes`` sets
            ``--dynamic-etcd-nodes``
        """
        etcd_nodes = (config or {}).get('etcd_nodes', DEFAULT_ETCD_NODES)
        # pachctl wants a token argument even when there is none
        token = credentials.token or ' '
        self._log.info('Deploying Pachyderm on bucket %s in %s', bucket,
                       region)
        run_cmd([self.pachctl, 'deploy', 'amazon', bucket,
                 credentials.access_key, credentials.secret_key, token,
                 region, str(storage_size),
                 '--dynamic-etcd-nodes=%d' % etcd_nodes],
                redact=(credentials.secret_key, credentials.token))


def deploy_on_converged(result, spec, deployer, provisioner, credentials,
                        storage_size=DEFAULT_STORAGE_SIZE, config=None,
                        bucket=None):
    """
    Deploy the data platform once the cluster has converged.

    :param result: :class:`.ConvergenceResult` of the provisioning run
    :param spec: The :class:`.ClusterSpec` that was converged
    :param deployer: A :class:`.DeploymentBackend`
    :param provisioner: Backend providing ``create_bucket`` for the store
    :param credentials: A :class:`.CredentialProvider`
    :param bucket: Existing bucket to use instead of creating a new one
    :return: The bucket name Pachyderm was deployed on
    """
    if not result.is_converged:
        raise ValueError('Refusing to deploy on a cluster that did not '
                         'converge: %s' % (result,))
    if bucket is None:
        bucket = generate_bucket_name()
        provisioner.create_bucket(bucket)
    deployer.deploy_application(bucket, credentials.get_credentials(),
                                spec.region, storage_size, config or {})
    return bucket
