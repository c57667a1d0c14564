import logging
import os
import time
from typing import Any, Dict

import boto3

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

ENV_TABLE_NAME_VARIABLE = 'TABLE_NAME_VARIABLE'
DEFAULT_TABLE_NAME_VARIABLE = 'TABLE_NAME'
RESPONSE = '200 OK'

dynamodb_client = boto3.client('dynamodb', region_name=os.environ.get('AWS_REGION'))


def lambda_handler(event: Dict[str, Any], context: Any) -> str:
    """
    Add one item to the table, then log how many items it holds.

    Used to check that the function can still reach the table after each
    migration step. Errors from DynamoDB are not caught; they fail the
    invocation.
    """
    # TABLE_NAME_VARIABLE names the variable carrying the table name
    table_name = os.environ[os.environ.get(ENV_TABLE_NAME_VARIABLE, DEFAULT_TABLE_NAME_VARIABLE)]

    logger.info(f"*** Adding new item to {table_name} table.")
    add_item(table_name)

    count = count_items(table_name)
    logger.info(f"*** There are {count} item(s) in {table_name} table.")

    return RESPONSE


def add_item(table_name: str) -> Dict[str, Dict[str, str]]:
    """
    Put an item keyed by the current time in milliseconds.

    Both keys share the same timestamp: PK is 'pk#<ms>' and SK is 'sk#<ms>'.

    Returns:
        The key of the written item
    """
    now = now_ms()
    item = {
        'PK': {'S': f'pk#{now}'},
        'SK': {'S': f'sk#{now}'},
    }
    dynamodb_client.put_item(TableName=table_name, Item=item)
    return item


def now_ms() -> int:
    return int(time.time() * 1000)


def count_items(table_name: str) -> int:
    return dynamodb_client.scan(TableName=table_name)['Count']
