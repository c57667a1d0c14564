"""
Deletion protection for the table and its replicas.

RemovalPolicy.RETAIN on a Table protects the table in the stack's own region
only. Replicas created through Custom::DynamoDBReplica resources are separate
CloudFormation resources and have to be retained one by one, otherwise removing
the Table from the stack deletes them.
"""

from typing import Iterable, List, Union

from aws_cdk import CfnResource, RemovalPolicy, Resource


def protect_from_deletion(resource: Union[Resource, CfnResource], replicas: Iterable[CfnResource] = ()) -> List[CfnResource]:
	"""
	Retain a table resource and each of its replica sub-resources.

	Args:
	    resource: The Table or CfnGlobalTable to retain
	    replicas: Replica sub-resources returned by the table declaration

	Returns:
	    List of the replica resources that were protected
	"""
	resource.apply_removal_policy(RemovalPolicy.RETAIN)

	protected = []
	for replica in replicas:
		replica.apply_removal_policy(RemovalPolicy.RETAIN)
		protected.append(replica)
	return protected
