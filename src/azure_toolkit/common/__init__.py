"""Shared building blocks: value types, state, sinks, scheduling and health."""
