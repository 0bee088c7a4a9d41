"""Thinking session engine: storage, state machine and rendering."""
