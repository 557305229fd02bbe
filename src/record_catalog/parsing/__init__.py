"""Parsing module for the catalog command and filter language."""

from record_catalog.parsing.command_parser import (
    Command,
    CommandParser,
    DependenciesCommand,
    DescribeCommand,
    FindCommand,
    GraphCommand,
    OrphansCommand,
    PathCommand,
    RebuildCommand,
    ReferencesCommand,
    ShowCategoriesCommand,
    ShowTypesCommand,
    StatsCommand,
    TopCommand,
    parse_filter,
)

__all__ = [
    "Command",
    "CommandParser",
    "DependenciesCommand",
    "DescribeCommand",
    "FindCommand",
    "GraphCommand",
    "OrphansCommand",
    "PathCommand",
    "RebuildCommand",
    "ReferencesCommand",
    "ShowCategoriesCommand",
    "ShowTypesCommand",
    "StatsCommand",
    "TopCommand",
    "parse_filter",
]
