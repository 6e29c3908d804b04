"""Workflow graph reconstruction."""

from lighthouse.graph.builder import ChainStatus, StepChain, build_step_chain, require_step_chain

__all__ = ["ChainStatus", "StepChain", "build_step_chain", "require_step_chain"]
