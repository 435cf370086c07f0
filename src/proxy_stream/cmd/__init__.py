"""Command line interface modules.

The command modules turn command-line options into a ``RelayConfig``,
set up logging and start the relay.
"""
