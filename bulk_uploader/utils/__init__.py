"""Shared utilities: event emitter and cross-task state."""
