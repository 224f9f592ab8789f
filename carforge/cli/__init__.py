"""carforge CLI — Typer-based command-line interface.

Provides the ``carforge`` command with subcommands for packing a directory
into a CAR file, inspecting CAR files and listing directories inside them.

All output uses Rich for formatted terminal display.
"""
