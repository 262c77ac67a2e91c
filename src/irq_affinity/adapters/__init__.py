"""Adapters implementing the planner's ports."""
