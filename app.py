#!/usr/bin/env python3
"""
Main CDK application for the DynamoDB global table migration

This module serves as the entry point for synthesizing the migration steps. It
reads the settings file, validates the region topology, and creates one stack
per step of each migration track. Steps of a track share a CloudFormation stack
name and are meant to be deployed one after another, e.g.:

    cdk deploy OnDemandStack0
    cdk deploy OnDemandStack1
    ...

Pass `-c track=ondemand` or `-c track=provisioned` to synthesize a single track.
"""

import os
import cdk_nag
import aws_cdk as cdk

from global_table_migration.migration_stack import (
	MigrationStepProps,
	MigrationStepStack,
)
from global_table_migration.migration_steps import track_steps
from global_table_migration.utils.config_utils import get_config, load_topology
from global_table_migration.utils.log_retention import LogGroupRetentionAspect

LOG_RETENTION_DAYS = 30

settings = get_config('./configuration/settings.json')
topology = load_topology(settings)

app = cdk.App()

selected_track = app.node.try_get_context('track')
if selected_track and selected_track not in topology.tracks:
	raise ValueError(f'Unknown track {selected_track}, expected one of: {", ".join(topology.tracks)}')

env = cdk.Environment(account=os.getenv('CDK_DEFAULT_ACCOUNT'), region=topology.home_region)

for track_name, track in topology.tracks.items():
	if selected_track and track_name != selected_track:
		continue

	steps = track_steps(topology, track_name)
	for step in steps:
		MigrationStepStack(
			app,
			f'{track.stack_name}{step.ordinal}',
			props=MigrationStepProps(topology=topology, track=track, step=step),
			env=env,
		)
	print(f'Track {track_name}: {len(steps)} steps for stack {track.stack_name}.')

# Apply log retention policy (ONE_MONTH) to all CloudWatch Log Groups
cdk.Aspects.of(app).add(LogGroupRetentionAspect(LOG_RETENTION_DAYS))

# Adding cdk-nag checks
cdk.Aspects.of(app).add(cdk_nag.AwsSolutionsChecks())

app.synth()
