"""
DynamoDB tables for the migration steps.

This module provides the CloudFormation resources for the three ways a step can
represent the table:
- An owned Table whose replicas are Custom::DynamoDBReplica resources
- A name-based reference to a table that already exists
- An unmanaged AWS::DynamoDB::GlobalTable with explicit per-region settings
"""

from typing import List, Optional, Tuple

from aws_cdk import CfnResource, CustomResource, aws_dynamodb as ddb
from constructs import Construct

from global_table_migration.migration_steps import Billing, IndexSpec, KeyAttribute, TableSpec
from global_table_migration.utils.config_utils import CapacityScaling

REPLICA_RESOURCE_TYPE = 'Custom::DynamoDBReplica'
STREAM_VIEW_TYPE = 'NEW_AND_OLD_IMAGES'

_ATTRIBUTE_TYPES = {
	'S': ddb.AttributeType.STRING,
	'N': ddb.AttributeType.NUMBER,
	'B': ddb.AttributeType.BINARY,
}


def _attribute(key: KeyAttribute) -> ddb.Attribute:
	return ddb.Attribute(name=key.name, type=_ATTRIBUTE_TYPES[key.type])


def create_owned_table(scope: Construct, table_spec: TableSpec) -> Tuple[ddb.Table, List[CfnResource]]:
	"""
	Create the DynamoDB Table managed by the stack.

	Replicas are declared through replication_regions, which makes CDK create one
	Custom::DynamoDBReplica resource per replica region. Those resources are
	returned alongside the table because removal policies applied to the table do
	not reach them.

	Args:
	    scope: The CDK construct scope
	    table_spec: Table settings of the current step

	Returns:
	    Tuple containing:
	    - The created Table
	    - The replica sub-resources, one per replica region
	"""
	point_in_time_recovery_specification = None
	if table_spec.point_in_time_recovery:
		# Creates a snapshot of the table before deletion
		point_in_time_recovery_specification = ddb.PointInTimeRecoverySpecification(
			point_in_time_recovery_enabled=True
		)

	if table_spec.billing.is_provisioned:
		billing_mode = ddb.BillingMode.PROVISIONED
	else:
		billing_mode = ddb.BillingMode.PAY_PER_REQUEST

	table = ddb.Table(
		scope,
		'MyTable',
		table_name=table_spec.name,
		partition_key=_attribute(table_spec.partition_key),
		sort_key=_attribute(table_spec.sort_key),
		billing_mode=billing_mode,
		replication_regions=list(table_spec.replica_regions),
		point_in_time_recovery_specification=point_in_time_recovery_specification,
	)

	return table, collect_replica_resources(table)


def collect_replica_resources(table: ddb.Table) -> List[CfnResource]:
	"""
	Return the Custom::DynamoDBReplica resources created for a Table.

	Args:
	    table: The Table declared with replication_regions

	Returns:
	    List of replica CfnResources in declaration order
	"""
	replicas = []
	for child in table.node.children:
		if not isinstance(child, CustomResource):
			continue
		for resource in child.node.children:
			if isinstance(resource, CfnResource) and resource.cfn_resource_type == REPLICA_RESOURCE_TYPE:
				replicas.append(resource)
	return replicas


def add_reverse_lookup_index(table: ddb.Table, index_spec: IndexSpec) -> None:
	"""Add the keys-only global secondary index with the key schema swapped."""
	table.add_global_secondary_index(
		index_name=index_spec.name,
		partition_key=_attribute(index_spec.partition_key),
		sort_key=_attribute(index_spec.sort_key),
		projection_type=ddb.ProjectionType[index_spec.projection],
	)


def enable_table_autoscaling(table: ddb.Table, billing: Billing) -> None:
	"""
	Enable read and write capacity autoscaling on the base table.

	A replicated Table in PROVISIONED mode is rejected by CDK unless its write
	capacity is autoscaled.

	Args:
	    table: The Table to scale
	    billing: Provisioned billing with read and write bounds
	"""
	table.auto_scale_write_capacity(
		min_capacity=billing.write.min_capacity,
		max_capacity=billing.write.max_capacity,
	).scale_on_utilization(target_utilization_percent=billing.write.target_utilization)

	table.auto_scale_read_capacity(
		min_capacity=billing.read.min_capacity,
		max_capacity=billing.read.max_capacity,
	).scale_on_utilization(target_utilization_percent=billing.read.target_utilization)


def enable_index_autoscaling(table: ddb.Table, index_name: str, billing: Billing) -> None:
	"""Enable read and write capacity autoscaling on a global secondary index."""
	table.auto_scale_global_secondary_index_write_capacity(
		index_name,
		min_capacity=billing.write.min_capacity,
		max_capacity=billing.write.max_capacity,
	).scale_on_utilization(target_utilization_percent=billing.write.target_utilization)

	table.auto_scale_global_secondary_index_read_capacity(
		index_name,
		min_capacity=billing.read.min_capacity,
		max_capacity=billing.read.max_capacity,
	).scale_on_utilization(target_utilization_percent=billing.read.target_utilization)


def reference_table_by_name(scope: Construct, table_name: str) -> ddb.ITable:
	"""Refer to an existing table by its name, without owning it."""
	return ddb.Table.from_table_name(scope, 'MyExternalTable', table_name)


def _auto_scaling_settings(scaling: CapacityScaling) -> ddb.CfnGlobalTable.CapacityAutoScalingSettingsProperty:
	return ddb.CfnGlobalTable.CapacityAutoScalingSettingsProperty(
		min_capacity=scaling.min_capacity,
		max_capacity=scaling.max_capacity,
		seed_capacity=scaling.min_capacity,
		target_tracking_scaling_policy_configuration=ddb.CfnGlobalTable.TargetTrackingScalingPolicyConfigurationProperty(
			target_value=scaling.target_utilization,
		),
	)


def _read_throughput(billing: Billing) -> Optional[ddb.CfnGlobalTable.ReadProvisionedThroughputSettingsProperty]:
	if not billing.is_provisioned:
		return None
	return ddb.CfnGlobalTable.ReadProvisionedThroughputSettingsProperty(
		read_capacity_auto_scaling_settings=_auto_scaling_settings(billing.read),
	)


def _write_throughput(billing: Billing) -> Optional[ddb.CfnGlobalTable.WriteProvisionedThroughputSettingsProperty]:
	if not billing.is_provisioned:
		return None
	return ddb.CfnGlobalTable.WriteProvisionedThroughputSettingsProperty(
		write_capacity_auto_scaling_settings=_auto_scaling_settings(billing.write),
	)


def _key_schema(partition_key: KeyAttribute, sort_key: KeyAttribute) -> List[ddb.CfnGlobalTable.KeySchemaProperty]:
	return [
		ddb.CfnGlobalTable.KeySchemaProperty(attribute_name=partition_key.name, key_type='HASH'),
		ddb.CfnGlobalTable.KeySchemaProperty(attribute_name=sort_key.name, key_type='RANGE'),
	]


def create_global_table(scope: Construct, table_spec: TableSpec) -> ddb.CfnGlobalTable:
	"""
	Create the unmanaged AWS::DynamoDB::GlobalTable.

	Every region gets its own replica specification carrying the index, PiTR
	and, for provisioned billing, read autoscaling. Write autoscaling is shared
	by all replicas and is set on the table and on the index.

	Args:
	    scope: The CDK construct scope
	    table_spec: Table settings of the current step

	Returns:
	    ddb.CfnGlobalTable: The created global table
	"""
	billing = table_spec.billing
	index = table_spec.index
	write_throughput = _write_throughput(billing)

	attribute_definitions = [
		ddb.CfnGlobalTable.AttributeDefinitionProperty(
			attribute_name=table_spec.partition_key.name,
			attribute_type=table_spec.partition_key.type,
		),
		ddb.CfnGlobalTable.AttributeDefinitionProperty(
			attribute_name=table_spec.sort_key.name,
			attribute_type=table_spec.sort_key.type,
		),
	]

	indexes = [
		ddb.CfnGlobalTable.GlobalSecondaryIndexProperty(
			index_name=index.name,
			key_schema=_key_schema(index.partition_key, index.sort_key),
			projection=ddb.CfnGlobalTable.ProjectionProperty(projection_type=index.projection),
			write_provisioned_throughput_settings=write_throughput,
		)
	]

	replicas = []
	for region in table_spec.regions:
		replicas.append(
			ddb.CfnGlobalTable.ReplicaSpecificationProperty(
				region=region,
				global_secondary_indexes=[
					ddb.CfnGlobalTable.ReplicaGlobalSecondaryIndexSpecificationProperty(
						index_name=index.name,
						read_provisioned_throughput_settings=_read_throughput(billing),
					)
				],
				point_in_time_recovery_specification=ddb.CfnGlobalTable.PointInTimeRecoverySpecificationProperty(
					point_in_time_recovery_enabled=table_spec.point_in_time_recovery,
				),
				read_provisioned_throughput_settings=_read_throughput(billing),
			)
		)

	return ddb.CfnGlobalTable(
		scope,
		'MyGlobalTable',
		table_name=table_spec.name,
		billing_mode=billing.mode,
		attribute_definitions=attribute_definitions,
		key_schema=_key_schema(table_spec.partition_key, table_spec.sort_key),
		stream_specification=ddb.CfnGlobalTable.StreamSpecificationProperty(stream_view_type=STREAM_VIEW_TYPE),
		global_secondary_indexes=indexes,
		replicas=replicas,
		write_provisioned_throughput_settings=write_throughput,
	)
