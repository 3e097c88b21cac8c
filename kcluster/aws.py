"""
:mod:`~kcluster.aws` implements the provisioning backend on AWS: kops creates
and applies the cluster, boto3 answers instance queries, opens security group
ingress and manages the kops state store bucket.
"""
from collections import namedtuple
from logging import getLogger

from boto3 import session
from botocore.exceptions import BotoCoreError, ClientError

from .backends import ProvisioningBackend, CredentialProvider, Credentials
from .cmdutils import run_cmd
from .errors import BackendError
from .models import Instance

ClusterHandle = namedtuple('ClusterHandle', ['name', 'state_store_url'])

_LIVE_STATES = ['pending', 'running']


def _to_instance(ec2_instance):
    """Convert a boto3.EC2.Instance to an immutable :class:`.Instance`."""
    tags = {t['Key']: t['Value'] for t in ec2_instance.tags or []}
    groups = tuple((g['GroupId'], g['GroupName'])
                   for g in ec2_instance.security_groups or [])
    return Instance(instance_id=ec2_instance.id, tags=tags,
                    public_dns=ec2_instance.public_dns_name or '',
                    security_groups=groups)


def tag_filters(tag_filter):
    """Translate ``{key: value}`` into EC2 filters on live instances."""
    filters = [{'Name': 'tag:' + key, 'Values': [value]}
               for key, value in sorted(tag_filter.items())]
    filters.append({'Name': 'instance-state-name', 'Values': _LIVE_STATES})
    return filters


class KopsProvisioner(ProvisioningBackend):
    """Provisioning backend using the kops CLI and a boto3 session.

    :param ses: A :class:`boto3.session.Session` bound to the cluster region
    :param kops: Path of the kops executable
    """

    def __init__(self, ses, kops='kops'):
        self.ses = ses
        self.region = ses.region_name
        self.ec2 = ses.resource('ec2')
        self.s3 = ses.client('s3')
        self.kops = kops
        self._log = getLogger(__name__)

    @classmethod
    def from_spec(cls, spec, profile_name=None, **kwargs):
        """Build a provisioner for ``spec.region`` from the boto3 credential
        chain (environment, shared config, instance role)."""
        try:
            ses = session.Session(profile_name=profile_name,
                                  region_name=spec.region)
        except BotoCoreError as err:
            raise BackendError('Could not open an AWS session: %s'
                               % err) from err
        return cls(ses, **kwargs)

    def create_bucket(self, bucket):
        """Create an S3 bucket in the provisioner's region.

        :param bucket: The bucket name
        """
        self._log.info('Creating bucket s3://%s in %s', bucket, self.region)
        kwargs = {'Bucket': bucket}
        # S3 rejects an explicit location constraint for us-east-1
        if self.region != 'us-east-1':
            kwargs['CreateBucketConfiguration'] = {
                'LocationConstraint': self.region}
        try:
            self.s3.create_bucket(**kwargs)
        except (BotoCoreError, ClientError) as err:
            raise BackendError('Could not create bucket %s: %s'
                               % (bucket, err)) from err

    def ensure_state_store(self, spec):
        """Create the kops state store unless the caller supplied one."""
        if spec.state_store_generated:
            self.create_bucket(spec.state_store)
        self._log.info('kops state store: %s', spec.state_store_url)

    def create_cluster(self, spec):
        self.ensure_state_store(spec)
        run_cmd([
            self.kops, 'create', 'cluster',
            '--state=' + spec.state_store_url,
            '--node-count', str(spec.node_count),
            '--zones', spec.zone,
            '--master-zones', spec.zone,
            '--dns', 'private',
            '--dns-zone', spec.dns_zone,
            '--node-size', spec.node_size,
            '--master-size', spec.master_size,
            spec.name,
        ])
        return ClusterHandle(spec.name, spec.state_store_url)

    def update_cluster(self, handle):
        run_cmd([self.kops, 'update', 'cluster', handle.name, '--yes',
                 '--state=' + handle.state_store_url])

    def describe_instances(self, tag_filter):
        try:
            found = self.ec2.instances.filter(DryRun=False,
                                              Filters=tag_filters(tag_filter))
            return [_to_instance(i) for i in found]
        except (BotoCoreError, ClientError) as err:
            raise BackendError('describe-instances failed: %s' % err) from err

    def authorize_ingress(self, group_id, rule):
        try:
            self.ec2.SecurityGroup(group_id).authorize_ingress(
                IpProtocol=rule.protocol, FromPort=rule.port,
                ToPort=rule.port, CidrIp=rule.cidr)
        except ClientError as err:
            code = err.response.get('Error', {}).get('Code')
            if code == 'InvalidPermission.Duplicate':
                self._log.info('%s/%s already open on %s', rule.protocol,
                               rule.port, group_id)
                return
            raise BackendError('Could not authorize %s on %s: %s'
                               % (rule, group_id, err)) from err
        except BotoCoreError as err:
            raise BackendError('Could not authorize %s on %s: %s'
                               % (rule, group_id, err)) from err


class SessionCredentials(CredentialProvider):
    """Credentials resolved by boto3's provider chain."""

    def __init__(self, ses):
        self.ses = ses

    def get_credentials(self):
        creds = self.ses.get_credentials()
        if creds is None:
            raise BackendError('No AWS credentials found')
        frozen = creds.get_frozen_credentials()
        return Credentials(access_key=frozen.access_key,
                           secret_key=frozen.secret_key,
                           token=frozen.token or '')
