"""
Pipe Factory

Validates pipe orders against machine constraints, decomposes them into
manufacturing steps and runs a five-worker factory floor coordinated by a
planner agent.
"""

__version__ = "0.1.0"
