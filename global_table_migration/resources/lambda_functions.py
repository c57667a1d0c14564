import os

from constructs import Construct
from aws_cdk import (
	Duration,
	aws_lambda as _lambda
)

from global_table_migration.utils.config_utils import TABLE_NAME_VARIABLE

TABLE_WRITER_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'lambda', 'table-writer')


def create_table_function(scope: Construct, function_name: str, env_variable: str, table_name: str) -> _lambda.Function:
	"""
	Create the Lambda function that writes to and counts the items of the table.

	Args:
	    scope: The CDK construct scope
	    function_name: Physical name of the function
	    env_variable: Environment variable carrying the table name; its own name is
	        passed in TABLE_NAME_VARIABLE
	    table_name: Name of the table, possibly a token

	Returns:
	    The Lambda function
	"""
	return _lambda.Function(
		scope,
		'MyFunction',
		function_name=function_name,
		runtime=_lambda.Runtime.PYTHON_3_13,
		architecture=_lambda.Architecture.ARM_64,
		timeout=Duration.seconds(30),
		memory_size=1024,
		handler='table-writer.lambda_handler',
		environment={
			env_variable: table_name,
			TABLE_NAME_VARIABLE: env_variable,
		},
		code=_lambda.Code.from_asset(TABLE_WRITER_PATH),
	)
