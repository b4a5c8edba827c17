"""Pulumi entry point for the musicstore GKE stack."""

import pulumi

from musicstore_infra._stack_config import load_stack_config
from musicstore_infra._stack_program import define_stack, export_stack_outputs

stack_config = load_stack_config(pulumi.Config(), pulumi.Config("gcp"))
export_stack_outputs(define_stack(stack_config))
