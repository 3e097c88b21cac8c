"""
With ``--dns private`` the cluster's API name only resolves inside the VPC;
:func:`register_master` points it at the master's public address locally.
"""
import socket
from logging import getLogger


def api_host(cluster_name):
    return 'api.' + cluster_name


def register_master(endpoint, cluster_name, hosts_path='/etc/hosts',
                    resolve=socket.gethostbyname):
    """
    Append ``<master ip> api.<cluster>`` to a hosts file.

    :param endpoint: The master :class:`.Endpoint`
    :param cluster_name: Name of the cluster
    :param hosts_path: The hosts file to edit (usually needs root)
    :param resolve: Function mapping a DNS name to an IP address
    :return: The line that is present in the file
    """
    log = getLogger(__name__)
    ip = resolve(endpoint.dns_name)
    line = '{0} {1}'.format(ip, api_host(cluster_name))
    with open(hosts_path, 'a+') as hosts:
        hosts.seek(0)
        content = hosts.read()
        if line in content.splitlines():
            log.debug('%s already has "%s"', hosts_path, line)
            return line
        # Some files don't end with a newline
        if content and not content.endswith('\n'):
            hosts.write('\n')
        hosts.write(line + '\n')
    log.info('Added "%s" to %s', line, hosts_path)
    return line
