"""
Uniform access to whichever resource represents the table in a step.

The function binder only needs a table name, a way to grant actions and,
where the resource exposes one, the stream ARN. TableHandle wraps the three
representations so callers never branch on the resource type.
"""

from enum import Enum
from typing import Optional, Union

from aws_cdk import aws_dynamodb as ddb, aws_iam as iam


class TableHandleKind(Enum):
	OWNED = 'owned'
	NAME_REFERENCE = 'name-reference'
	UNMANAGED = 'unmanaged'


class TableHandle:
	"""
	Tagged variant over Owned(Table), NameReference(ITable) and Unmanaged(CfnGlobalTable).

	Use the owned, name_reference and unmanaged constructors rather than
	instantiating the class directly.
	"""

	def __init__(self, kind: TableHandleKind, resource: Union[ddb.ITable, ddb.CfnGlobalTable]):
		self.kind = kind
		self.resource = resource

	@classmethod
	def owned(cls, table: ddb.Table) -> 'TableHandle':
		return cls(TableHandleKind.OWNED, table)

	@classmethod
	def name_reference(cls, table: ddb.ITable) -> 'TableHandle':
		return cls(TableHandleKind.NAME_REFERENCE, table)

	@classmethod
	def unmanaged(cls, global_table: ddb.CfnGlobalTable) -> 'TableHandle':
		return cls(TableHandleKind.UNMANAGED, global_table)

	@property
	def table_name(self) -> str:
		return self.resource.table_name

	@property
	def stream_arn(self) -> Optional[str]:
		"""Stream ARN exposed as a resource attribute, or None for name references."""
		if self.kind == TableHandleKind.UNMANAGED:
			return self.resource.attr_stream_arn
		if self.kind == TableHandleKind.OWNED:
			return self.resource.table_stream_arn
		return None

	def grant(self, grantee: iam.IGrantable, *actions: str) -> None:
		"""
		Grant actions on the table to a principal.

		Tables and name references use ITable.grant. The global table has no grant
		methods, so an explicit statement on its ARN is added to the principal.

		Args:
		    grantee: The principal receiving the permissions
		    *actions: IAM actions such as 'dynamodb:PutItem'
		"""
		if self.kind == TableHandleKind.UNMANAGED:
			grantee.grant_principal.add_to_principal_policy(
				iam.PolicyStatement(
					effect=iam.Effect.ALLOW,
					actions=list(actions),
					resources=[self.resource.attr_arn],
				)
			)
		else:
			self.resource.grant(grantee, *actions)
