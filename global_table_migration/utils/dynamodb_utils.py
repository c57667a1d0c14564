"""
DynamoDB utilities backed by AWS SDK calls at deploy time.

This module provides helpers for settings that CloudFormation cannot express
for the resource type in use:
- Enabling point-in-time recovery on SDK-created replica tables
- Reading the latest stream ARN of a table that is only referenced by name
"""

from typing import Dict, Tuple

from aws_cdk import Aws, custom_resources as cr
from constructs import Construct, IConstruct

DESCRIBE_TABLE_ID = 'MyTableDescribeTable'
STREAM_ARN_PATH = 'Table.LatestStreamArn'


def build_table_arn(region: str, table_name: str) -> str:
	"""Build the ARN of a table in the deploying account."""
	return f'arn:{Aws.PARTITION}:dynamodb:{region}:{Aws.ACCOUNT_ID}:table/{table_name}'


def enable_replica_point_in_time_recovery(
	scope: Construct, table_name: str, region: str, depends_on: IConstruct = None
) -> cr.AwsCustomResource:
	"""
	Enable point-in-time recovery on a replica table through the DynamoDB API.

	The Table construct only enables PiTR in the region the stack is deployed
	to; replicas are created by the SDK and need their own call.

	Args:
	    scope: The CDK construct scope
	    table_name: Name of the replicated table
	    region: Replica region to enable PiTR in
	    depends_on: Construct that has to exist first, usually the Table

	Returns:
	    cr.AwsCustomResource: The custom resource issuing updateContinuousBackups
	"""
	update_continuous_backups = cr.AwsSdkCall(
		service='DynamoDB',
		action='updateContinuousBackups',
		region=region,
		parameters={
			'TableName': table_name,
			'PointInTimeRecoverySpecification': {'PointInTimeRecoveryEnabled': True},
		},
		output_paths=['ContinuousBackupsDescription'],
		physical_resource_id=cr.PhysicalResourceId.of(table_name),
	)

	custom_resource = cr.AwsCustomResource(
		scope,
		f'MyTableUpdateContinuousBackups-{region}',
		on_create=update_continuous_backups,
		install_latest_aws_sdk=False,
		policy=cr.AwsCustomResourcePolicy.from_sdk_calls(resources=[build_table_arn(region, table_name)]),
	)
	if depends_on is not None:
		custom_resource.node.add_dependency(depends_on)
	return custom_resource


class StreamArnResolver:
	"""
	Resolves table stream ARNs with a describeTable call, once per table and region.

	Each resolution creates an AwsCustomResource whose physical resource id is the
	table name, so redeploying the stack does not issue a new call unless the
	parameters change. Repeated resolutions within a stack reuse the first one.
	"""

	def __init__(self, scope: Construct):
		self._scope = scope
		self._stream_arns: Dict[Tuple[str, str], str] = {}

	def resolve(self, table_name: str, region: str) -> str:
		"""
		Return the latest stream ARN of a table.

		Args:
		    table_name: Name of the table
		    region: Region of the table to describe

		Returns:
		    str: Token resolving to Table.LatestStreamArn at deploy time
		"""
		key = (table_name, region)
		if key not in self._stream_arns:
			if self._stream_arns:
				construct_id = f'{DESCRIBE_TABLE_ID}-{len(self._stream_arns)}'
			else:
				construct_id = DESCRIBE_TABLE_ID
			self._stream_arns[key] = self._describe_stream_arn(construct_id, table_name, region)
		return self._stream_arns[key]

	@property
	def call_count(self) -> int:
		"""Number of describeTable calls declared so far."""
		return len(self._stream_arns)

	def _describe_stream_arn(self, construct_id: str, table_name: str, region: str) -> str:
		describe_table = cr.AwsSdkCall(
			service='DynamoDB',
			action='describeTable',
			region=region,
			parameters={'TableName': table_name},
			output_paths=[STREAM_ARN_PATH],
			physical_resource_id=cr.PhysicalResourceId.of(table_name),
		)
		describe_table_custom_resource = cr.AwsCustomResource(
			self._scope,
			construct_id,
			on_create=describe_table,
			on_update=describe_table,
			install_latest_aws_sdk=False,
			# Only this table in this region can be described
			policy=cr.AwsCustomResourcePolicy.from_sdk_calls(resources=[build_table_arn(region, table_name)]),
		)
		return describe_table_custom_resource.get_response_field(STREAM_ARN_PATH)
