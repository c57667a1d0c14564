"""
Utility functions for IAM permissions.

The table function needs exactly two actions on the table, whatever resource
represents it in the current step.
"""

from typing import Tuple

from aws_cdk import aws_iam as iam

from global_table_migration.utils.table_handle import TableHandle

TABLE_FUNCTION_ACTIONS: Tuple[str, ...] = ('dynamodb:PutItem', 'dynamodb:Scan')


def grant_table_access(table: TableHandle, grantee: iam.IGrantable) -> None:
	"""
	Grant the function's table permissions to a principal.

	Args:
	    table: Handle of the table active in the current step
	    grantee: The principal receiving the permissions
	"""
	table.grant(grantee, *TABLE_FUNCTION_ACTIONS)
