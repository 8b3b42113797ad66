"""Example scripts for Sandbox Persistence.

Available examples:

basic_usage.py
    Status, blocking backup and restore against a running container.
    Start here to understand the core workflow.

Run any example:
    python examples/basic_usage.py <container>
"""
