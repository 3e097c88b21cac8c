from kcluster import Endpoint
from kcluster.hosts import register_master

ENDPOINT = Endpoint('ec2-54-1-2-3.compute-1.amazonaws.com', 'i-1')


def resolve(name):
    assert name == ENDPOINT.dns_name
    return '54.1.2.3'


def test_appends_line(tmp_path):
    hosts = tmp_path / 'hosts'
    hosts.write_text('127.0.0.1 localhost\n')
    line = register_master(ENDPOINT, 'c.kubernetes.com', str(hosts),
                           resolve=resolve)
    assert line == '54.1.2.3 api.c.kubernetes.com'
    assert hosts.read_text() == \
        '127.0.0.1 localhost\n54.1.2.3 api.c.kubernetes.com\n'


def test_missing_trailing_newline(tmp_path):
    hosts = tmp_path / 'hosts'
    hosts.write_text('127.0.0.1 localhost')
    register_master(ENDPOINT, 'c.kubernetes.com', str(hosts), resolve=resolve)
    assert hosts.read_text().splitlines() == [
        '127.0.0.1 localhost', '54.1.2.3 api.c.kubernetes.com']


def test_idempotent(tmp_path):
    hosts = tmp_path / 'hosts'
    for _ in range(2):
        register_master(ENDPOINT, 'c.kubernetes.com', str(hosts),
                        resolve=resolve)
    assert hosts.read_text() == '54.1.2.3 api.c.kubernetes.com\n'
