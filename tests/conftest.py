"""
Shared pytest fixtures for the global table migration tests.
"""

import copy
import os

import aws_cdk as cdk
import pytest

from global_table_migration.migration_stack import MigrationStepProps, MigrationStepStack
from global_table_migration.migration_steps import resolve_step
from global_table_migration.utils.config_utils import load_topology

HOME_REGION = 'eu-west-1'

SETTINGS = {
	'home_region': HOME_REGION,
	'replica_regions': ['eu-north-1'],
	'expansion_regions': ['eu-central-1'],
	'index_name': 'MyGsi',
	'function_env_variable': 'TABLE_NAME',
	'tags': {'Project': 'global-table-migration'},
	'tracks': {
		'ondemand': {'stack_name': 'OnDemandStack'},
		'provisioned': {
			'stack_name': 'ProvisionedStack',
			'autoscaling': {
				'read': {'min_capacity': 5, 'max_capacity': 10, 'target_utilization': 70},
				'write': {'min_capacity': 5, 'max_capacity': 10, 'target_utilization': 70},
			},
		},
	},
}


@pytest.fixture(scope='function', autouse=True)
def aws_credentials():
	"""Mocked AWS Credentials for moto."""
	os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
	os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
	os.environ['AWS_SECURITY_TOKEN'] = 'testing'
	os.environ['AWS_SESSION_TOKEN'] = 'testing'
	os.environ['AWS_DEFAULT_REGION'] = HOME_REGION

	yield

	os.environ.pop('AWS_ACCESS_KEY_ID', None)
	os.environ.pop('AWS_SECRET_ACCESS_KEY', None)
	os.environ.pop('AWS_SECURITY_TOKEN', None)
	os.environ.pop('AWS_SESSION_TOKEN', None)
	os.environ.pop('AWS_DEFAULT_REGION', None)


@pytest.fixture
def settings():
	"""A fresh copy of the settings file content."""
	return copy.deepcopy(SETTINGS)


@pytest.fixture
def topology(settings):
	return load_topology(settings)


@pytest.fixture
def synth_step(topology):
	"""Return a function that synthesizes one step and returns its stack."""

	def _synth(track, ordinal):
		app = cdk.App()
		step = resolve_step(topology, track, ordinal)
		return MigrationStepStack(
			app,
			f'{topology.tracks[track].stack_name}{ordinal}',
			props=MigrationStepProps(topology=topology, track=topology.tracks[track], step=step),
			env=cdk.Environment(account='123456789012', region=HOME_REGION),
		)

	return _synth
