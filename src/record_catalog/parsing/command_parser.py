"""Parser for the catalog command language.

Commands::

    find [Type] [where <filter>]
    orphans [all] [excluding Type, ...]
    top [N]
    top dependencies [N]
    path "from-key" to "to-key"
    stats ["key"]
    references "key"
    dependencies "key"
    show types
    show categories
    describe Type
    rebuild
    graph [to "file.dot"]

A filter is one or more ``field op value`` conditions joined by ``and`` or by
``or``. Groups are flat, so a filter cannot mix the two.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from record_catalog.parsing.command_lexer import CommandLexer
from record_catalog.query import Condition, ConditionGroup, LogicalOperator, Operator


@dataclass
class FindCommand:
    """A FIND command."""

    type_name: str | None = None
    group: ConditionGroup | None = None


@dataclass
class OrphansCommand:
    """An ORPHANS command."""

    include_all: bool = False
    excluded_types: list[str] = field(default_factory=list)


@dataclass
class TopCommand:
    """A TOP command: most referenced, or most dependencies."""

    count: int | None = None
    by_dependencies: bool = False


@dataclass
class PathCommand:
    """A PATH command."""

    from_key: str
    to_key: str


@dataclass
class StatsCommand:
    """A STATS command; without a key it reports on the whole graph."""

    key: str | None = None


@dataclass
class ReferencesCommand:
    """A REFERENCES command: who references the record."""

    key: str


@dataclass
class DependenciesCommand:
    """A DEPENDENCIES command: what the record references."""

    key: str


@dataclass
class ShowTypesCommand:
    pass


@dataclass
class ShowCategoriesCommand:
    pass


@dataclass
class DescribeCommand:
    """A DESCRIBE command."""

    type_name: str


@dataclass
class RebuildCommand:
    pass


@dataclass
class GraphCommand:
    """A GRAPH command; without a path the DOT text is returned."""

    output_file: str | None = None


Command = (
    FindCommand | OrphansCommand | TopCommand | PathCommand | StatsCommand
    | ReferencesCommand | DependenciesCommand | ShowTypesCommand | ShowCategoriesCommand
    | DescribeCommand | RebuildCommand | GraphCommand
)

_FILTER_PREFIX = "find where "

_COMPARISON_OPS = {
    "=": Operator.EQUAL,
    "==": Operator.EQUAL,
    "!=": Operator.NOT_EQUAL,
    "<": Operator.LESS,
    "<=": Operator.LESS_OR_EQUAL,
    ">": Operator.GREATER,
    ">=": Operator.GREATER_OR_EQUAL,
}


class CommandParser:
    """Parser for catalog commands."""

    tokens = CommandLexer.tokens

    def __init__(self) -> None:
        self.lexer = CommandLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self._offset = 0
        self._errors: list[str] = []

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : command SEMICOLON
                     | command"""
        p[0] = p[1]

    # --- find ---

    def p_command_find(self, p: yacc.YaccProduction) -> None:
        """command : FIND type_opt where_opt"""
        p[0] = FindCommand(type_name=p[2], group=p[3])

    def p_type_opt(self, p: yacc.YaccProduction) -> None:
        """type_opt : IDENTIFIER"""
        p[0] = p[1]

    def p_type_opt_empty(self, p: yacc.YaccProduction) -> None:
        """type_opt : """
        p[0] = None

    def p_where_opt(self, p: yacc.YaccProduction) -> None:
        """where_opt : WHERE filter"""
        p[0] = p[2]

    def p_where_opt_empty(self, p: yacc.YaccProduction) -> None:
        """where_opt : """
        p[0] = None

    # --- other commands ---

    def p_command_orphans(self, p: yacc.YaccProduction) -> None:
        """command : ORPHANS all_opt excluding_opt"""
        p[0] = OrphansCommand(include_all=p[2], excluded_types=p[3])

    def p_all_opt(self, p: yacc.YaccProduction) -> None:
        """all_opt : ALL"""
        p[0] = True

    def p_all_opt_empty(self, p: yacc.YaccProduction) -> None:
        """all_opt : """
        p[0] = False

    def p_excluding_opt(self, p: yacc.YaccProduction) -> None:
        """excluding_opt : EXCLUDING type_list"""
        p[0] = p[2]

    def p_excluding_opt_empty(self, p: yacc.YaccProduction) -> None:
        """excluding_opt : """
        p[0] = []

    def p_type_list_single(self, p: yacc.YaccProduction) -> None:
        """type_list : type_name"""
        p[0] = [p[1]]

    def p_type_list_multiple(self, p: yacc.YaccProduction) -> None:
        """type_list : type_list COMMA type_name"""
        p[0] = p[1] + [p[3]]

    def p_type_name(self, p: yacc.YaccProduction) -> None:
        """type_name : IDENTIFIER
                     | STRING"""
        p[0] = p[1]

    def p_command_top(self, p: yacc.YaccProduction) -> None:
        """command : TOP count_opt"""
        p[0] = TopCommand(count=p[2])

    def p_command_top_dependencies(self, p: yacc.YaccProduction) -> None:
        """command : TOP DEPENDENCIES count_opt"""
        p[0] = TopCommand(count=p[3], by_dependencies=True)

    def p_count_opt(self, p: yacc.YaccProduction) -> None:
        """count_opt : INTEGER"""
        p[0] = p[1]

    def p_count_opt_empty(self, p: yacc.YaccProduction) -> None:
        """count_opt : """
        p[0] = None

    def p_command_path(self, p: yacc.YaccProduction) -> None:
        """command : PATH record_key TO record_key"""
        p[0] = PathCommand(from_key=p[2], to_key=p[4])

    def p_command_stats(self, p: yacc.YaccProduction) -> None:
        """command : STATS"""
        p[0] = StatsCommand()

    def p_command_stats_record(self, p: yacc.YaccProduction) -> None:
        """command : STATS record_key"""
        p[0] = StatsCommand(key=p[2])

    def p_command_references(self, p: yacc.YaccProduction) -> None:
        """command : REFERENCES record_key"""
        p[0] = ReferencesCommand(key=p[2])

    def p_command_dependencies(self, p: yacc.YaccProduction) -> None:
        """command : DEPENDENCIES record_key"""
        p[0] = DependenciesCommand(key=p[2])

    def p_record_key(self, p: yacc.YaccProduction) -> None:
        """record_key : STRING
                      | IDENTIFIER"""
        p[0] = p[1]

    def p_command_show_types(self, p: yacc.YaccProduction) -> None:
        """command : SHOW TYPES"""
        p[0] = ShowTypesCommand()

    def p_command_show_categories(self, p: yacc.YaccProduction) -> None:
        """command : SHOW CATEGORIES"""
        p[0] = ShowCategoriesCommand()

    def p_command_describe(self, p: yacc.YaccProduction) -> None:
        """command : DESCRIBE type_name"""
        p[0] = DescribeCommand(type_name=p[2])

    def p_command_rebuild(self, p: yacc.YaccProduction) -> None:
        """command : REBUILD"""
        p[0] = RebuildCommand()

    def p_command_graph(self, p: yacc.YaccProduction) -> None:
        """command : GRAPH"""
        p[0] = GraphCommand()

    def p_command_graph_to(self, p: yacc.YaccProduction) -> None:
        """command : GRAPH TO STRING"""
        p[0] = GraphCommand(output_file=p[3])

    # --- filters ---

    def p_filter_single(self, p: yacc.YaccProduction) -> None:
        """filter : condition"""
        p[0] = ConditionGroup(conditions=[p[1]])

    def p_filter_join(self, p: yacc.YaccProduction) -> None:
        """filter : filter AND condition
                  | filter OR condition"""
        group: ConditionGroup = p[1]
        op = LogicalOperator(p[2].lower())
        if len(group.conditions) > 1 and group.logical_op is not op:
            # Reported after the parse; raising here would trigger PLY error recovery
            self._errors.append(
                f"Cannot mix 'and' and 'or' in one filter (position {p.lexpos(2) - self._offset})"
            )
        group.logical_op = op
        group.conditions.append(p[3])
        p[0] = group

    def p_condition_comparison(self, p: yacc.YaccProduction) -> None:
        """condition : field_path EQ value
                     | field_path EQEQ value
                     | field_path NEQ value
                     | field_path LT value
                     | field_path LTE value
                     | field_path GT value
                     | field_path GTE value"""
        p[0] = Condition(field_name=p[1], operator=_COMPARISON_OPS[p[2]], value=p[3])

    def p_condition_contains(self, p: yacc.YaccProduction) -> None:
        """condition : field_path CONTAINS value"""
        p[0] = Condition(field_name=p[1], operator=Operator.CONTAINS, value=p[3])

    def p_condition_not_contains(self, p: yacc.YaccProduction) -> None:
        """condition : field_path NOT CONTAINS value"""
        p[0] = Condition(field_name=p[1], operator=Operator.NOT_CONTAINS, value=p[4])

    def p_condition_starts_with(self, p: yacc.YaccProduction) -> None:
        """condition : field_path STARTS WITH value"""
        p[0] = Condition(field_name=p[1], operator=Operator.STARTS_WITH, value=p[4])

    def p_condition_ends_with(self, p: yacc.YaccProduction) -> None:
        """condition : field_path ENDS WITH value"""
        p[0] = Condition(field_name=p[1], operator=Operator.ENDS_WITH, value=p[4])

    def p_condition_matches(self, p: yacc.YaccProduction) -> None:
        """condition : field_path MATCHES REGEX"""
        p[0] = Condition(field_name=p[1], operator=Operator.REGEX, value=p[3])

    def p_condition_is_null(self, p: yacc.YaccProduction) -> None:
        """condition : field_path IS NULL"""
        p[0] = Condition(field_name=p[1], operator=Operator.IS_NULL)

    def p_condition_is_not_null(self, p: yacc.YaccProduction) -> None:
        """condition : field_path IS NOT NULL"""
        p[0] = Condition(field_name=p[1], operator=Operator.IS_NOT_NULL)

    def p_field_path_single(self, p: yacc.YaccProduction) -> None:
        """field_path : field_name"""
        p[0] = p[1]

    def p_field_path_dotted(self, p: yacc.YaccProduction) -> None:
        """field_path : field_path DOT field_name"""
        p[0] = f"{p[1]}.{p[3]}"

    def p_field_name(self, p: yacc.YaccProduction) -> None:
        """field_name : IDENTIFIER
                      | PATH
                      | TYPES
                      | DEPENDENCIES
                      | REFERENCES
                      | STATS
                      | TOP
                      | ALL
                      | GRAPH
                      | CATEGORIES"""
        # Command words are ordinary field names inside a filter
        p[0] = p[1]

    def p_value_number(self, p: yacc.YaccProduction) -> None:
        """value : INTEGER
                 | FLOAT"""
        p[0] = p[1]

    def p_value_string(self, p: yacc.YaccProduction) -> None:
        """value : STRING
                 | IDENTIFIER"""
        p[0] = p[1]

    def p_value_bool(self, p: yacc.YaccProduction) -> None:
        """value : TRUE
                 | FALSE"""
        p[0] = p[1].lower() == "true"

    def p_value_null(self, p: yacc.YaccProduction) -> None:
        """value : NULL"""
        p[0] = None

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos - self._offset})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="statement", **kwargs)

    def parse(self, data: str) -> Command:
        """Parse a single command."""
        return self._parse(data, offset=0)

    def parse_filter(self, data: str) -> ConditionGroup:
        """Parse a bare filter expression such as ``hp > 50 and name contains "go"``."""
        command = self._parse(_FILTER_PREFIX + data, offset=len(_FILTER_PREFIX))
        return command.group

    def _parse(self, data: str, offset: int) -> Any:
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self._offset = offset
        self._errors = []
        self.lexer.input("")
        try:
            result = self.parser.parse(data, lexer=self.lexer.lexer)
        finally:
            self._offset = 0
        if self._errors:
            raise SyntaxError(self._errors[0])
        return result


def parse_filter(text: str) -> ConditionGroup:
    """Parse a filter expression into a condition group.

    Raises:
        SyntaxError: If the text is not a valid filter.
    """
    return CommandParser().parse_filter(text)
