"""
This __init__.py file makes the 'commands' directory a Python package.

Each module defines a handler for one or more CLI commands; dnsync.py wires
them into the typer app.
"""
