"""
Unit tests for the DynamoDB helpers, the protection applier and the table handle.
"""

import json

import aws_cdk as cdk
import pytest
from aws_cdk import assertions, aws_dynamodb as ddb, aws_iam as iam, aws_logs as logs

from global_table_migration.migration_steps import ON_DEMAND_TRACK, resolve_step
from global_table_migration.resources.dynamodb import collect_replica_resources, create_owned_table
from global_table_migration.utils.dynamodb_utils import (
	DESCRIBE_TABLE_ID,
	StreamArnResolver,
	build_table_arn,
	enable_replica_point_in_time_recovery,
)
from global_table_migration.utils.log_retention import LogGroupRetentionAspect
from global_table_migration.utils.protection import protect_from_deletion
from global_table_migration.utils.table_handle import TableHandle, TableHandleKind


@pytest.fixture
def stack():
	app = cdk.App()
	return cdk.Stack(app, 'TestStack', env=cdk.Environment(account='123456789012', region='eu-west-1'))


class TestStreamArnResolver:
	"""Tests for the memoised describeTable call."""

	def test_same_table_resolved_once(self, stack):
		resolver = StreamArnResolver(stack)

		first = resolver.resolve('MyTable', 'eu-west-1')
		second = resolver.resolve('MyTable', 'eu-west-1')

		assert first == second
		assert resolver.call_count == 1
		assertions.Template.from_stack(stack).resource_count_is('Custom::AWS', 1)

	def test_other_region_gets_its_own_call(self, stack):
		resolver = StreamArnResolver(stack)

		resolver.resolve('MyTable', 'eu-west-1')
		resolver.resolve('MyTable', 'eu-north-1')

		assert resolver.call_count == 2
		assert stack.node.try_find_child(DESCRIBE_TABLE_ID) is not None
		assert stack.node.try_find_child(f'{DESCRIBE_TABLE_ID}-1') is not None

	def test_physical_id_is_table_name(self, stack):
		StreamArnResolver(stack).resolve('MyTable', 'eu-west-1')

		resource = next(iter(assertions.Template.from_stack(stack).find_resources('Custom::AWS').values()))
		properties = json.dumps(resource['Properties'])
		assert 'describeTable' in properties
		assert 'physicalResourceId' in properties
		assert 'Table.LatestStreamArn' in properties


class TestReplicaPointInTimeRecovery:
	def test_depends_on_table(self, stack):
		table = ddb.Table(
			stack,
			'MyTable',
			partition_key=ddb.Attribute(name='PK', type=ddb.AttributeType.STRING),
		)

		enable_replica_point_in_time_recovery(stack, 'MyTable', 'eu-north-1', depends_on=table)

		template = assertions.Template.from_stack(stack)
		resource = next(iter(template.find_resources('Custom::AWS').values()))
		assert 'updateContinuousBackups' in json.dumps(resource['Properties'])
		table_id = next(iter(template.find_resources('AWS::DynamoDB::Table')))
		assert table_id in resource['DependsOn']


def test_build_table_arn(stack):
	arn = stack.resolve(build_table_arn('eu-north-1', 'MyTable'))

	rendered = json.dumps(arn)
	assert ':dynamodb:eu-north-1:' in rendered
	assert ':table/MyTable' in rendered
	assert 'AWS::AccountId' in rendered


class TestProtection:
	"""Tests for retaining the table and its replica sub-resources."""

	@pytest.fixture
	def owned(self, stack, topology):
		step = resolve_step(topology, ON_DEMAND_TRACK, 1)
		return create_owned_table(stack, step.table)

	def test_replicas_collected_per_region(self, owned):
		table, replicas = owned

		assert len(replicas) == 1
		assert [replica.node.path for replica in collect_replica_resources(table)] == [replica.node.path for replica in replicas]

	def test_protect_table_and_replicas(self, stack, owned):
		table, replicas = owned

		protected = protect_from_deletion(table, replicas)

		assert len(protected) == len(replicas) == 1
		template = assertions.Template.from_stack(stack)
		template.has_resource('AWS::DynamoDB::Table', {'DeletionPolicy': 'Retain'})
		template.has_resource('Custom::DynamoDBReplica', {'DeletionPolicy': 'Retain', 'UpdateReplacePolicy': 'Retain'})

	def test_protect_table_only(self, stack, owned):
		table, _ = owned

		assert protect_from_deletion(table) == []
		for replica in assertions.Template.from_stack(stack).find_resources('Custom::DynamoDBReplica').values():
			assert replica.get('DeletionPolicy') != 'Retain'


class TestTableHandle:
	def test_name_reference_has_no_stream_attribute(self, stack):
		handle = TableHandle.name_reference(ddb.Table.from_table_name(stack, 'Imported', 'MyTable'))

		assert handle.kind == TableHandleKind.NAME_REFERENCE
		assert handle.stream_arn is None
		assert handle.table_name == 'MyTable'

	def test_unmanaged_grant_adds_explicit_statement(self, stack):
		global_table = ddb.CfnGlobalTable(
			stack,
			'MyGlobalTable',
			attribute_definitions=[ddb.CfnGlobalTable.AttributeDefinitionProperty(attribute_name='PK', attribute_type='S')],
			key_schema=[ddb.CfnGlobalTable.KeySchemaProperty(attribute_name='PK', key_type='HASH')],
			replicas=[ddb.CfnGlobalTable.ReplicaSpecificationProperty(region='eu-west-1')],
			billing_mode='PAY_PER_REQUEST',
			stream_specification=ddb.CfnGlobalTable.StreamSpecificationProperty(stream_view_type='NEW_AND_OLD_IMAGES'),
		)
		role = iam.Role(stack, 'Role', assumed_by=iam.ServicePrincipal('lambda.amazonaws.com'))

		TableHandle.unmanaged(global_table).grant(role, 'dynamodb:PutItem', 'dynamodb:Scan')

		assertions.Template.from_stack(stack).has_resource_properties(
			'AWS::IAM::Policy',
			{
				'PolicyDocument': {
					'Statement': [
						{
							'Effect': 'Allow',
							'Action': ['dynamodb:PutItem', 'dynamodb:Scan'],
							'Resource': {'Fn::GetAtt': ['MyGlobalTable', 'Arn']},
						}
					]
				}
			},
		)


class TestLogGroupRetentionAspect:
	def test_explicit_log_group_gets_retention(self, stack):
		logs.CfnLogGroup(stack, 'Group')

		cdk.Aspects.of(stack).add(LogGroupRetentionAspect(30))

		assertions.Template.from_stack(stack).has_resource_properties('AWS::Logs::LogGroup', {'RetentionInDays': 30})

	def test_existing_retention_kept(self, stack):
		logs.CfnLogGroup(stack, 'Group', retention_in_days=7)

		cdk.Aspects.of(stack).add(LogGroupRetentionAspect(30))

		assertions.Template.from_stack(stack).has_resource_properties('AWS::Logs::LogGroup', {'RetentionInDays': 7})

	def test_function_log_group_retention(self, synth_step):
		stack = synth_step(ON_DEMAND_TRACK, 0)

		cdk.Aspects.of(stack).add(LogGroupRetentionAspect(30))

		assertions.Template.from_stack(stack).has_resource_properties(
			'Custom::LogRetention',
			{
				'LogGroupName': {'Fn::Join': ['', ['/aws/lambda/', {'Ref': assertions.Match.string_like_regexp('^MyFunction')}]]},
				'RetentionInDays': 30,
			},
		)

	def test_unsupported_retention(self):
		with pytest.raises(ValueError, match='Unsupported log retention of 45 days'):
			LogGroupRetentionAspect(45)
