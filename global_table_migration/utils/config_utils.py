"""
Configuration utilities for the global table migration app.

This module loads the settings file and turns it into the region topology and
per-track naming used by every migration step. Invalid settings raise a
ValueError so that `cdk synth` stops before anything is deployed.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

TABLE_SUFFIX = 'MyTable'
FUNCTION_SUFFIX = 'MyFunction'
DEFAULT_FUNCTION_ENV_VARIABLE = 'TABLE_NAME'
# Carries the name of the function's table name variable
TABLE_NAME_VARIABLE = 'TABLE_NAME_VARIABLE'

# Application Auto Scaling target tracking only accepts 10-90 percent
MIN_TARGET_UTILIZATION = 10
MAX_TARGET_UTILIZATION = 90


def get_config(json_dir):
	"""
	Load a JSON configuration file.

	Args:
	    json_dir: Path to the JSON file

	Returns:
	    The loaded JSON configuration as a Python object
	"""
	with open(json_dir, 'r') as json_file:
		config = json.load(json_file)
		return config


@dataclass(frozen=True)
class CapacityScaling:
	"""Autoscaling bounds for one direction (read or write) of provisioned capacity."""

	min_capacity: int
	max_capacity: int
	target_utilization: int


class TrackConfig:
	"""
	Naming and capacity settings for one deployment track.

	Attributes:
	    name (str): Track name ('ondemand' or 'provisioned')
	    stack_name (str): CloudFormation stack name shared by every step of the track
	    table_name (str): Physical name of the DynamoDB table
	    function_name (str): Physical name of the Lambda function
	    read_scaling (Optional[CapacityScaling]): Read autoscaling bounds, if provisioned
	    write_scaling (Optional[CapacityScaling]): Write autoscaling bounds, if provisioned
	"""

	def __init__(
		self,
		*,
		name: str,
		stack_name: str,
		read_scaling: Optional[CapacityScaling] = None,
		write_scaling: Optional[CapacityScaling] = None,
	):
		self.name = name
		self.stack_name = stack_name
		self.table_name = f'{stack_name}{TABLE_SUFFIX}'
		self.function_name = f'{stack_name}{FUNCTION_SUFFIX}'
		self.read_scaling = read_scaling
		self.write_scaling = write_scaling


class TopologyConfig:
	"""
	Region topology and naming constants shared by both tracks.

	Attributes:
	    home_region (str): Region the stacks are deployed to
	    replica_regions (Tuple[str, ...]): Regions holding a replica from the first step
	    expansion_regions (Tuple[str, ...]): Regions added once the table is a global table
	    index_name (str): Name of the global secondary index
	    function_env_variable (str): Environment variable carrying the table name
	    tags (Dict[str, str]): Tags applied to every stack
	    tracks (Dict[str, TrackConfig]): Per-track settings keyed by track name
	"""

	def __init__(
		self,
		*,
		home_region: str,
		replica_regions: Tuple[str, ...],
		expansion_regions: Tuple[str, ...],
		index_name: str,
		function_env_variable: str,
		tags: Dict[str, str],
		tracks: Dict[str, TrackConfig],
	):
		self.home_region = home_region
		self.replica_regions = replica_regions
		self.expansion_regions = expansion_regions
		self.index_name = index_name
		self.function_env_variable = function_env_variable
		self.tags = tags
		self.tracks = tracks

	@property
	def regions(self) -> Tuple[str, ...]:
		"""Home region first, then the replica regions."""
		return (self.home_region,) + self.replica_regions


def parse_capacity_scaling(config: Dict[str, Any], direction: str) -> CapacityScaling:
	"""
	Parse and validate the autoscaling bounds of one capacity direction.

	Args:
	    config: Dictionary with min_capacity, max_capacity and target_utilization
	    direction: 'read' or 'write', used in error messages

	Returns:
	    CapacityScaling: The validated bounds
	"""
	try:
		scaling = CapacityScaling(
			min_capacity=int(config['min_capacity']),
			max_capacity=int(config['max_capacity']),
			target_utilization=int(config['target_utilization']),
		)
	except KeyError as e:
		raise ValueError(f'Missing {direction} autoscaling setting: {e}') from e

	if scaling.min_capacity < 1 or scaling.min_capacity > scaling.max_capacity:
		raise ValueError(
			f'Invalid {direction} capacity range {scaling.min_capacity}-{scaling.max_capacity}'
		)
	if not MIN_TARGET_UTILIZATION <= scaling.target_utilization <= MAX_TARGET_UTILIZATION:
		raise ValueError(
			f'{direction} target utilization must be between {MIN_TARGET_UTILIZATION} and '
			f'{MAX_TARGET_UTILIZATION} percent, got {scaling.target_utilization}'
		)
	return scaling


def load_topology(settings: Dict[str, Any]) -> TopologyConfig:
	"""
	Build the topology from the loaded settings file.

	Args:
	    settings: Content of configuration/settings.json

	Returns:
	    TopologyConfig: The validated topology

	Raises:
	    ValueError: If a required key is missing or the regions are inconsistent
	"""
	for key in ('home_region', 'replica_regions', 'index_name', 'tracks'):
		if key not in settings:
			raise ValueError(f'Missing required setting: {key}')

	home_region = settings['home_region']
	replica_regions = tuple(settings['replica_regions'])
	expansion_regions = tuple(settings.get('expansion_regions', []))

	if not replica_regions:
		raise ValueError('At least one replica region is required')
	if home_region in replica_regions or home_region in expansion_regions:
		raise ValueError(f'The home region {home_region} cannot also be a replica region')
	if set(replica_regions) & set(expansion_regions):
		raise ValueError('Expansion regions must not already be replica regions')
	if len(set(replica_regions)) != len(replica_regions):
		raise ValueError('Replica regions must be unique')

	function_env_variable = settings.get('function_env_variable', DEFAULT_FUNCTION_ENV_VARIABLE)
	if not function_env_variable or function_env_variable == TABLE_NAME_VARIABLE:
		raise ValueError(f'Invalid function_env_variable: {function_env_variable!r}')

	tracks = {}
	for track_name, track_settings in settings['tracks'].items():
		if 'stack_name' not in track_settings:
			raise ValueError(f'Track {track_name} has no stack_name')
		read_scaling = None
		write_scaling = None
		autoscaling = track_settings.get('autoscaling')
		if autoscaling:
			read_scaling = parse_capacity_scaling(autoscaling.get('read', {}), 'read')
			write_scaling = parse_capacity_scaling(autoscaling.get('write', {}), 'write')
		tracks[track_name] = TrackConfig(
			name=track_name,
			stack_name=track_settings['stack_name'],
			read_scaling=read_scaling,
			write_scaling=write_scaling,
		)

	return TopologyConfig(
		home_region=home_region,
		replica_regions=replica_regions,
		expansion_regions=expansion_regions,
		index_name=settings['index_name'],
		function_env_variable=function_env_variable,
		tags=settings.get('tags', {}),
		tracks=tracks,
	)
