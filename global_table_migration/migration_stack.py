"""
Migration Step Stack for the DynamoDB global table migration

This module defines the stack deployed for each step of a migration track. All
steps of a track share one CloudFormation stack name and the same construct
ids, so deploying the steps in order updates a single stack in place:
- The table is declared as an owned Table, referenced by name, or declared as
  an unmanaged CfnGlobalTable depending on the step
- The table and every replica are retained once protection starts
- The Lambda function is bound to whichever table handle the step exposes
- The TableStreamArn output is read from the table or from a describeTable call
"""

from typing import Any, Dict, Optional

from aws_cdk import (
	CfnOutput,
	Stack,
	Tags,
)
from constructs import Construct
from cdk_nag import NagSuppressions

from global_table_migration.migration_steps import BindingKind, MigrationStep, StreamArnSource
from global_table_migration.resources.dynamodb import (
	add_reverse_lookup_index,
	create_global_table,
	create_owned_table,
	enable_index_autoscaling,
	enable_table_autoscaling,
	reference_table_by_name,
)
from global_table_migration.resources.lambda_functions import create_table_function
from global_table_migration.utils.config_utils import TopologyConfig, TrackConfig
from global_table_migration.utils.dynamodb_utils import StreamArnResolver, enable_replica_point_in_time_recovery
from global_table_migration.utils.iam_utils import grant_table_access
from global_table_migration.utils.protection import protect_from_deletion
from global_table_migration.utils.table_handle import TableHandle

STREAM_ARN_OUTPUT = 'TableStreamArn'


class MigrationStepProps:
	"""
	Properties for the MigrationStepStack.

	Attributes:
	    topology (TopologyConfig): Regions and naming constants
	    track (TrackConfig): Settings of the track the step belongs to
	    step (MigrationStep): The step to render
	    tags (Dict[str, str]): Tags to apply to all resources in the stack
	"""

	def __init__(
		self,
		*,
		topology: TopologyConfig,
		track: TrackConfig,
		step: MigrationStep,
		tags: Optional[Dict[str, str]] = None,
	):
		self.topology = topology
		self.track = track
		self.step = step
		self.tags = tags if tags is not None else topology.tags


class MigrationStepStack(Stack):
	"""
	Renders one migration step.

	The stack is deployed to the home region under the track's stack name. The
	construct id only tells the steps apart inside the CDK app.
	"""

	def __init__(
		self,
		scope: Construct,
		construct_id: str,
		*,
		props: MigrationStepProps,
		**kwargs: Any,
	) -> None:
		"""
		Initialize MigrationStepStack.

		Args:
		    scope (Construct): CDK construct scope
		    construct_id (str): CDK construct ID, e.g. 'OnDemandStack4'
		    props (MigrationStepProps): Properties for the stack
		    **kwargs (Any): Additional keyword arguments passed to the Stack constructor
		"""
		super().__init__(
			scope,
			construct_id,
			stack_name=props.track.stack_name,
			analytics_reporting=False,
			**kwargs,
		)

		if props.tags:
			for key, value in props.tags.items():
				Tags.of(self).add(key=key, value=value)

		step = props.step
		table_spec = step.table
		self.step = step
		self.stream_arn_resolver = StreamArnResolver(self)
		self.owned_table = None
		self.global_table = None
		self.protected_replicas = []

		if step.declares_owned_table:
			self.owned_table, replicas = create_owned_table(self, table_spec)
			if table_spec.billing.is_provisioned:
				enable_table_autoscaling(self.owned_table, table_spec.billing)
			add_reverse_lookup_index(self.owned_table, table_spec.index)
			if table_spec.billing.is_provisioned:
				enable_index_autoscaling(self.owned_table, table_spec.index.name, table_spec.billing)

			if step.protects_table:
				self.protected_replicas = protect_from_deletion(self.owned_table, replicas)

			if step.enables_replica_backups:
				for region in table_spec.replica_regions:
					enable_replica_point_in_time_recovery(
						self, table_spec.name, region, depends_on=self.owned_table
					)

		if step.declares_global_table:
			self.global_table = create_global_table(self, table_spec)
			# A single resource carries every replica
			protect_from_deletion(self.global_table)

		self.table = self._bind_table(step)

		self.table_function = create_table_function(
			self,
			function_name=props.track.function_name,
			env_variable=props.topology.function_env_variable,
			table_name=self.table.table_name,
		)
		grant_table_access(self.table, self.table_function)

		if step.stream_source == StreamArnSource.TABLE_ATTRIBUTE:
			stream_arn = self.table.stream_arn
			if stream_arn is None:
				raise ValueError(f'Step {step.ordinal} of {step.track} has no stream ARN attribute to output')
		else:
			stream_arn = self.stream_arn_resolver.resolve(table_spec.name, table_spec.home_region)

		CfnOutput(self, STREAM_ARN_OUTPUT, value=stream_arn)

		self._add_nag_suppressions()

	def _bind_table(self, step: MigrationStep) -> TableHandle:
		if step.binding == BindingKind.NAME_REFERENCE:
			return TableHandle.name_reference(reference_table_by_name(self, step.table.name))
		if step.binding == BindingKind.UNMANAGED:
			if self.global_table is None:
				raise ValueError(f'Step {step.ordinal} of {step.track} binds to a global table it does not declare')
			return TableHandle.unmanaged(self.global_table)
		if self.owned_table is None:
			raise ValueError(f'Step {step.ordinal} of {step.track} binds to a table it does not declare')
		return TableHandle.owned(self.owned_table)

	def _add_nag_suppressions(self) -> None:
		suppressions = [
			{
				'id': 'AwsSolutions-IAM4',
				'reason': 'AWSLambdaBasicExecutionRole is the minimum required for Lambda CloudWatch logging',
			},
			{
				'id': 'AwsSolutions-IAM5',
				'reason': 'Table grants include the index ARN wildcard; CDK-generated replica and log retention handlers require wildcards',
			},
			{
				'id': 'AwsSolutions-L1',
				'reason': 'CDK-generated Lambda functions for custom resources use predefined runtimes',
			},
		]
		if not self.step.table.point_in_time_recovery:
			suppressions.append(
				{
					'id': 'AwsSolutions-DDB3',
					'reason': 'Point-in-time recovery is enabled from the protection step of the migration onwards',
				}
			)
		NagSuppressions.add_stack_suppressions(self, suppressions, apply_to_nested_stacks=True)
