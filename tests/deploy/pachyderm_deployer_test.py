from unittest.mock import MagicMock

import pytest

from kcluster import ConvergenceResult, Endpoint, Stage, Timeout
from kcluster import deploy
from kcluster.backends import Credentials
from kcluster.deploy import PachydermDeployer, deploy_on_converged

CREDS = Credentials('AKIA', 's3cr3t', '')


@pytest.fixture
def commands(monkeypatch):
    issued = []
    monkeypatch.setattr(deploy, 'run_cmd',
                        lambda args, redact=(): issued.append((args, redact)))
    return issued


def test_deploy_application(commands):
    PachydermDeployer().deploy_application('123-pachyderm-store', CREDS,
                                           'us-east-1', 100,
                                           {'etcd_nodes': 5})
    args, redact = commands[0]
    assert args == ['pachctl', 'deploy', 'amazon', '123-pachyderm-store',
                    'AKIA', 's3cr3t', ' ', 'us-east-1', '100',
                    '--dynamic-etcd-nodes=5']
    assert 's3cr3t' in redact


def test_default_etcd_nodes(commands):
    PachydermDeployer('/bin/pachctl').deploy_application(
        'b', Credentials('id', 'key', 'tok'), 'us-west-2', 10, {})
    args, _ = commands[0]
    assert args[0] == '/bin/pachctl'
    assert args[6] == 'tok'
    assert args[-1] == '--dynamic-etcd-nodes=3'


def test_deploy_on_converged(spec):
    deployer, provisioner, credentials = MagicMock(), MagicMock(), MagicMock()
    credentials.get_credentials.return_value = CREDS
    result = ConvergenceResult.converged(Endpoint('m', 'i-1'))
    bucket = deploy_on_converged(result, spec, deployer, provisioner,
                                 credentials, storage_size=50)
    assert bucket.endswith('-pachyderm-store')
    provisioner.create_bucket.assert_called_once_with(bucket)
    deployer.deploy_application.assert_called_once_with(
        bucket, CREDS, spec.region, 50, {})


def test_deploy_on_existing_bucket(spec):
    deployer, provisioner, credentials = MagicMock(), MagicMock(), MagicMock()
    result = ConvergenceResult.converged(Endpoint('m', 'i-1'))
    assert deploy_on_converged(result, spec, deployer, provisioner,
                               credentials, bucket='mine') == 'mine'
    provisioner.create_bucket.assert_not_called()


def test_refuses_failed_cluster(spec):
    deployer = MagicMock()
    result = ConvergenceResult.failed(Timeout('x'), Stage.WAITING_FOR_MASTER)
    with pytest.raises(ValueError) as exc:
        deploy_on_converged(result, spec, deployer, MagicMock(), MagicMock())
    assert 'Failed(timeout during WaitingForMaster: x)' in str(exc.value)
    deployer.deploy_application.assert_not_called()
