"""
Migration steps for moving a DynamoDB Table to an AWS::DynamoDB::GlobalTable.

This module describes, for each deployment track, the ordered list of steps that
move a CDK-managed Table (whose replicas are created through SDK-driven custom
resources) to an unmanaged CfnGlobalTable without losing data. Every step is a
plain, immutable record; the stack in migration_stack.py renders any of them.

Two tracks are available:
- ondemand: the table is billed PAY_PER_REQUEST for the whole migration
- provisioned: the table starts PROVISIONED with autoscaling, is switched to
  PAY_PER_REQUEST while the resource type changes, and ends as a provisioned
  global table with per-replica autoscaling
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Tuple

from global_table_migration.utils.config_utils import CapacityScaling, TopologyConfig

ON_DEMAND_TRACK = 'ondemand'
PROVISIONED_TRACK = 'provisioned'

PARTITION_KEY = 'PK'
SORT_KEY = 'SK'
STRING_TYPE = 'S'

PAY_PER_REQUEST = 'PAY_PER_REQUEST'
PROVISIONED = 'PROVISIONED'


class TableRepresentation(IntEnum):
	"""Which resource represents the table, ordered by distance from the original Table."""

	OWNED_BASIC = 0
	OWNED_PROTECTED = 1
	OWNED_PROTECTED_EXTERNALLY_BOUND = 2
	DETACHED = 3
	UNMANAGED_GLOBAL = 4
	UNMANAGED_GLOBAL_EXPANDED = 5


class BindingKind(Enum):
	"""How the function addresses the table."""

	OWNED = 'owned'
	NAME_REFERENCE = 'name-reference'
	UNMANAGED = 'unmanaged'


class StreamArnSource(Enum):
	"""Where the TableStreamArn output value comes from."""

	TABLE_ATTRIBUTE = 'table-attribute'
	DESCRIBE_TABLE = 'describe-table'


@dataclass(frozen=True)
class KeyAttribute:
	name: str
	type: str = STRING_TYPE


@dataclass(frozen=True)
class Billing:
	mode: str
	read: Optional[CapacityScaling] = None
	write: Optional[CapacityScaling] = None

	@classmethod
	def on_demand(cls) -> 'Billing':
		return cls(mode=PAY_PER_REQUEST)

	@classmethod
	def provisioned(cls, read: CapacityScaling, write: CapacityScaling) -> 'Billing':
		return cls(mode=PROVISIONED, read=read, write=write)

	@property
	def is_provisioned(self) -> bool:
		return self.mode == PROVISIONED


@dataclass(frozen=True)
class IndexSpec:
	"""
	The single global secondary index of the table.

	The key schema is the base table's schema swapped (sort key becomes the
	partition key) so items can be looked up in reverse. Only keys are projected.
	"""

	name: str
	partition_key: KeyAttribute = KeyAttribute(SORT_KEY)
	sort_key: KeyAttribute = KeyAttribute(PARTITION_KEY)
	projection: str = 'KEYS_ONLY'


@dataclass(frozen=True)
class TableSpec:
	name: str
	billing: Billing
	regions: Tuple[str, ...]
	index: IndexSpec
	point_in_time_recovery: bool = False
	deletion_protection: bool = False
	partition_key: KeyAttribute = KeyAttribute(PARTITION_KEY)
	sort_key: KeyAttribute = KeyAttribute(SORT_KEY)

	@property
	def home_region(self) -> str:
		return self.regions[0]

	@property
	def replica_regions(self) -> Tuple[str, ...]:
		return self.regions[1:]


@dataclass(frozen=True)
class MigrationStep:
	"""
	One deployable snapshot of the migration.

	Attributes:
	    track (str): Track the step belongs to ('ondemand' or 'provisioned')
	    ordinal (int): Position of the step in its track, starting at 0
	    kind (TableRepresentation): Resource that represents the table
	    binding (BindingKind): How the function addresses the table
	    stream_source (StreamArnSource): Where the TableStreamArn output comes from
	    table (TableSpec): Table settings for this step
	"""

	track: str
	ordinal: int
	kind: TableRepresentation
	binding: BindingKind
	stream_source: StreamArnSource
	table: TableSpec

	@property
	def declares_owned_table(self) -> bool:
		return self.kind <= TableRepresentation.OWNED_PROTECTED_EXTERNALLY_BOUND

	@property
	def declares_global_table(self) -> bool:
		return self.kind >= TableRepresentation.UNMANAGED_GLOBAL

	@property
	def protects_table(self) -> bool:
		return self.kind >= TableRepresentation.OWNED_PROTECTED and self.kind != TableRepresentation.DETACHED

	@property
	def enables_replica_backups(self) -> bool:
		# PiTR on the Table construct does not reach replicas created by the SDK
		return self.declares_owned_table and self.table.point_in_time_recovery


@dataclass(frozen=True)
class StepPlan:
	kind: TableRepresentation
	binding: BindingKind
	provisioned: bool = False


STEP_PLANS: Dict[str, Tuple[StepPlan, ...]] = {
	ON_DEMAND_TRACK: (
		StepPlan(TableRepresentation.OWNED_BASIC, BindingKind.OWNED),
		StepPlan(TableRepresentation.OWNED_PROTECTED, BindingKind.OWNED),
		StepPlan(TableRepresentation.OWNED_PROTECTED_EXTERNALLY_BOUND, BindingKind.NAME_REFERENCE),
		StepPlan(TableRepresentation.DETACHED, BindingKind.NAME_REFERENCE),
		StepPlan(TableRepresentation.UNMANAGED_GLOBAL, BindingKind.NAME_REFERENCE),
		StepPlan(TableRepresentation.UNMANAGED_GLOBAL, BindingKind.UNMANAGED),
		StepPlan(TableRepresentation.UNMANAGED_GLOBAL_EXPANDED, BindingKind.UNMANAGED),
	),
	PROVISIONED_TRACK: (
		StepPlan(TableRepresentation.OWNED_BASIC, BindingKind.OWNED, provisioned=True),
		StepPlan(TableRepresentation.OWNED_PROTECTED, BindingKind.OWNED, provisioned=True),
		# Autoscaling targets belong to the stack; drop them before the Table leaves it
		StepPlan(TableRepresentation.OWNED_PROTECTED, BindingKind.OWNED),
		StepPlan(TableRepresentation.OWNED_PROTECTED_EXTERNALLY_BOUND, BindingKind.NAME_REFERENCE),
		StepPlan(TableRepresentation.DETACHED, BindingKind.NAME_REFERENCE),
		StepPlan(TableRepresentation.UNMANAGED_GLOBAL, BindingKind.NAME_REFERENCE),
		StepPlan(TableRepresentation.UNMANAGED_GLOBAL, BindingKind.UNMANAGED),
		StepPlan(TableRepresentation.UNMANAGED_GLOBAL, BindingKind.UNMANAGED, provisioned=True),
	),
}


def resolve_step(topology: TopologyConfig, track: str, ordinal: int) -> MigrationStep:
	"""
	Build the migration step at the given position of a track.

	Args:
	    topology: Regions, names and capacity settings loaded from the settings file
	    track: Track name ('ondemand' or 'provisioned')
	    ordinal: Position of the step in the track

	Returns:
	    MigrationStep: The immutable step record

	Raises:
	    ValueError: If the track is unknown or the ordinal is out of range
	"""
	if track not in STEP_PLANS:
		raise ValueError(f'Unknown migration track: {track}')
	plans = STEP_PLANS[track]
	if ordinal < 0 or ordinal >= len(plans):
		raise ValueError(f'Track {track} has steps 0 to {len(plans) - 1}, got {ordinal}')
	if track not in topology.tracks:
		raise ValueError(f'Track {track} is not configured in the settings file')

	plan = plans[ordinal]
	track_config = topology.tracks[track]

	if plan.provisioned:
		if track_config.read_scaling is None or track_config.write_scaling is None:
			raise ValueError(f'Track {track} needs read and write autoscaling settings')
		billing = Billing.provisioned(read=track_config.read_scaling, write=track_config.write_scaling)
	else:
		billing = Billing.on_demand()

	regions = topology.regions
	if plan.kind == TableRepresentation.UNMANAGED_GLOBAL_EXPANDED:
		regions = regions + topology.expansion_regions

	protected = plan.kind >= TableRepresentation.OWNED_PROTECTED

	if plan.binding == BindingKind.NAME_REFERENCE:
		stream_source = StreamArnSource.DESCRIBE_TABLE
	else:
		stream_source = StreamArnSource.TABLE_ATTRIBUTE

	return MigrationStep(
		track=track,
		ordinal=ordinal,
		kind=plan.kind,
		binding=plan.binding,
		stream_source=stream_source,
		table=TableSpec(
			name=track_config.table_name,
			billing=billing,
			regions=regions,
			index=IndexSpec(name=topology.index_name),
			point_in_time_recovery=protected,
			deletion_protection=protected,
		),
	)


def track_steps(topology: TopologyConfig, track: str) -> List[MigrationStep]:
	"""Return every step of a track in deployment order."""
	if track not in STEP_PLANS:
		raise ValueError(f'Unknown migration track: {track}')
	return [resolve_step(topology, track, ordinal) for ordinal in range(len(STEP_PLANS[track]))]
