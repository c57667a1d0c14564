"""
CloudWatch Log Group retention policy aspect for the migration stacks

This module defines a CDK Aspect that gives every Lambda function of a stack,
including the ones CDK generates for custom resources and replica handling,
a finite log retention.
"""

import jsii
from constructs import IConstruct
from aws_cdk import (
	IAspect,
	aws_logs as logs,
	aws_lambda as _lambda,
)

_RETENTION_DAYS = {
	1: logs.RetentionDays.ONE_DAY,
	3: logs.RetentionDays.THREE_DAYS,
	5: logs.RetentionDays.FIVE_DAYS,
	7: logs.RetentionDays.ONE_WEEK,
	14: logs.RetentionDays.TWO_WEEKS,
	30: logs.RetentionDays.ONE_MONTH,
	60: logs.RetentionDays.TWO_MONTHS,
	90: logs.RetentionDays.THREE_MONTHS,
	180: logs.RetentionDays.SIX_MONTHS,
	365: logs.RetentionDays.ONE_YEAR,
}


@jsii.implements(IAspect)
class LogGroupRetentionAspect:
	"""
	CDK Aspect that applies one retention period to every log group of a stack.

	Explicit log groups without a retention get it set directly. Lambda
	functions get a LogRetention resource for their /aws/lambda/<name> log
	group, which Lambda only creates on first invocation.
	"""

	def __init__(self, retention_days: int = 30):
		if retention_days not in _RETENTION_DAYS:
			raise ValueError(
				f'Unsupported log retention of {retention_days} days, expected one of: '
				f'{", ".join(str(days) for days in _RETENTION_DAYS)}'
			)
		self.retention_days = retention_days

	def visit(self, node: IConstruct) -> None:
		if isinstance(node, logs.CfnLogGroup):
			if node.retention_in_days is None:
				node.retention_in_days = self.retention_days

		if isinstance(node, _lambda.Function):
			logs.LogRetention(
				node,
				f'{node.node.id}LogRetention',
				log_group_name=f'/aws/lambda/{node.function_name}',
				retention=_RETENTION_DAYS[self.retention_days],
			)
