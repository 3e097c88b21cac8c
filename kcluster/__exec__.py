"""
:mod:`kcluster.__exec__` provides command line utilities for using basic
:class:`.convergence.ClusterConvergenceController` features:

* Provision a kops cluster on AWS and wait for it to converge
* Deploy Pachyderm on the converged cluster
* List the nodes of a running cluster
"""

import argparse
import logging

import kcluster as kcl
from .aws import KopsProvisioner, SessionCredentials
from .cmdutils import require_tool
from .convergence import ClusterConvergenceController
from .deploy import PachydermDeployer, deploy_on_converged, \
    DEFAULT_STORAGE_SIZE, DEFAULT_ETCD_NODES
from .errors import ConvergenceError, BackendError
from .hosts import register_master
from .kube import KubeNodeLister
from .models import ClusterSpec


def _parser():
    parser = argparse.ArgumentParser()
    parser.add_argument('-d', '--debug',
                        help="Print lots of debugging statements",
                        action="store_const", dest="loglevel",
                        const=logging.DEBUG, default=logging.WARNING)
    parser.add_argument('-v', '--verbose', help="Be verbose",
                        action="store_const", dest="loglevel",
                        const=logging.INFO)
    return parser


def _spec_from_args(args):
    overrides = {
        'name': args.name,
        'state_store': args.state,
        'region': args.region,
        'zone': args.zone,
        'node_count': args.nodes,
        'node_size': args.size,
    }
    if args.config:
        return ClusterSpec.from_config(args.config, **overrides)
    return ClusterSpec.create(
        **{k: v for k, v in overrides.items() if v is not None})


def _record(spec):
    """Save the spec so the cluster can be found and torn down afterwards."""
    spec.write_config(kcl._set_data(spec.name + '.json'))
    with open(kcl._set_data('current.txt'), 'w') as out:
        out.write(spec.name + '\n')


def main(argv=None):
    """Provision a cluster, wait for it to converge, then deploy Pachyderm."""
    parser = _parser()
    parser.add_argument('-c', '--config', type=str,
                        help='JSON cluster spec to start from.')
    parser.add_argument('--name', type=str, help='The cluster name.')
    parser.add_argument('--state', type=str,
                        help='Existing kops state store bucket to use.')
    parser.add_argument('--region', type=str, help='The AWS region.')
    parser.add_argument('--zone', type=str, help='The availability zone.')
    parser.add_argument('-n', '--nodes', type=int,
                        help='The number of worker nodes.')
    parser.add_argument('-t', '--size', type=str,
                        help='The instance type to use.')
    parser.add_argument('--profile', type=str,
                        help='The AWS credentials profile.')
    parser.add_argument('--interval', type=float, default=1,
                        help='Seconds between readiness checks.')
    parser.add_argument('--master-timeout', type=float, default=600,
                        help='Seconds to wait for the master.')
    parser.add_argument('--nodes-timeout', type=float, default=1200,
                        help='Seconds to wait for every node to be ready.')
    parser.add_argument('--hosts-file', type=str,
                        help='Register the master API name in this hosts file.')
    parser.add_argument('--skip-deploy', action='store_true',
                        help='Stop once the cluster has converged.')
    parser.add_argument('--storage-size', type=int,
                        default=DEFAULT_STORAGE_SIZE,
                        help='Size in GB of the Pachyderm etcd volumes.')
    parser.add_argument('--etcd-nodes', type=int, default=DEFAULT_ETCD_NODES,
                        help='Number of dynamic etcd nodes.')
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.loglevel)
    log = logging.getLogger()

    try:
        require_tool('kops')
        if not args.skip_deploy:
            require_tool('pachctl')
    except ConvergenceError as err:
        log.error(err)
        return 1

    spec = _spec_from_args(args)
    _record(spec)
    try:
        provisioner = KopsProvisioner.from_spec(spec,
                                                profile_name=args.profile)
    except ConvergenceError as err:
        log.error(err)
        return 1

    on_master_found = None
    if args.hosts_file:
        # The private API name must resolve before nodes can be listed
        def on_master_found(endpoint):
            try:
                register_master(endpoint, spec.name, args.hosts_file)
            except OSError as err:
                raise BackendError('Could not update %s: %s'
                                   % (args.hosts_file, err)) from err

    controller = ClusterConvergenceController(
        spec, provisioner, KubeNodeLister(context=spec.name),
        poll_interval=args.interval, master_timeout=args.master_timeout,
        nodes_timeout=args.nodes_timeout, on_master_found=on_master_found)
    result = controller.converge()
    print(result)
    if not result.is_converged:
        return 1

    if not args.skip_deploy:
        try:
            bucket = deploy_on_converged(
                result, spec, PachydermDeployer(), provisioner,
                SessionCredentials(provisioner.ses),
                storage_size=args.storage_size,
                config={'etcd_nodes': args.etcd_nodes})
        except ConvergenceError as err:
            log.error('Deploy failed: %s', err)
            return 1
        print('Pachyderm deployed on s3://' + bucket)
    return 0


def nodes(argv=None):
    """Print the nodes of a cluster with their role and readiness."""
    parser = _parser()
    parser.add_argument('--context', type=str,
                        help='kubeconfig context (the cluster name).')
    parser.add_argument('--kubeconfig', type=str, help='kubeconfig path.')
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.loglevel)

    lister = KubeNodeLister(context=args.context, config_file=args.kubeconfig)
    try:
        statuses = lister.list_nodes()
    except ConvergenceError as err:
        logging.getLogger().error(err)
        return 1
    for status in statuses:
        print('{0}\t{1}\t{2}'.format(*status))
    return 0
