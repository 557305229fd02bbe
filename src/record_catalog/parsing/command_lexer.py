"""Lexer for the catalog command language."""

import re

import ply.lex as lex

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


def _unescape(text: str) -> str:
    """Replace backslash escapes; any other escaped character stands for itself."""
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), text, flags=re.DOTALL)


class CommandLexer:
    """Lexer for tokenizing catalog commands and filters."""

    # Reserved keywords (matched case-insensitively)
    reserved = {
        "find": "FIND",
        "where": "WHERE",
        "and": "AND",
        "or": "OR",
        "not": "NOT",
        "contains": "CONTAINS",
        "starts": "STARTS",
        "ends": "ENDS",
        "with": "WITH",
        "matches": "MATCHES",
        "is": "IS",
        "null": "NULL",
        "true": "TRUE",
        "false": "FALSE",
        "orphans": "ORPHANS",
        "all": "ALL",
        "excluding": "EXCLUDING",
        "top": "TOP",
        "dependencies": "DEPENDENCIES",
        "path": "PATH",
        "to": "TO",
        "stats": "STATS",
        "references": "REFERENCES",
        "show": "SHOW",
        "types": "TYPES",
        "categories": "CATEGORIES",
        "describe": "DESCRIBE",
        "rebuild": "REBUILD",
        "graph": "GRAPH",
    }

    # Token list
    tokens = [
        "IDENTIFIER",
        "INTEGER",
        "FLOAT",
        "STRING",
        "REGEX",
        "COMMA",
        "DOT",
        "EQ",
        "EQEQ",
        "NEQ",
        "LT",
        "LTE",
        "GT",
        "GTE",
        "SEMICOLON",
    ] + list(reserved.values())

    # Lexer states: regex state for /pattern/ after MATCHES keyword
    states = (("regex", "exclusive"),)

    # Simple tokens; PLY tries longer string patterns first
    t_COMMA = r","
    t_DOT = r"\."
    t_EQEQ = r"=="
    t_EQ = r"="
    t_NEQ = r"!="
    t_LTE = r"<="
    t_LT = r"<"
    t_GTE = r">="
    t_GT = r">"
    t_SEMICOLON = r";"

    t_ignore = " \t"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_FLOAT(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+\.\d+"
        t.value = float(t.value)
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+"
        t.value = int(t.value)
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"([^"\\]|\\.)*"'
        t.value = _unescape(t.value[1:-1])
        return t

    def t_BACKTICK_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"`[^`]+`"
        # Always an identifier, even when the name is a keyword
        t.value = t.value[1:-1]
        t.type = "IDENTIFIER"
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        t.type = self.reserved.get(t.value.lower(), "IDENTIFIER")
        if t.type == "MATCHES":
            t.lexer.begin("regex")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_COMMENT(self, t: lex.LexToken) -> None:
        r"--[^\n]*"
        pass

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    # --- Exclusive regex state tokens ---

    t_regex_ignore = " \t"

    def t_regex_REGEX(self, t: lex.LexToken) -> lex.LexToken:
        r"/([^/\\]|\\.)*/"
        # Keep escapes as written; the pattern goes to re as-is, minus escaped slashes
        t.value = t.value[1:-1].replace("\\/", "/")
        t.lexer.begin("INITIAL")
        return t

    def t_regex_error(self, t: lex.LexToken) -> None:
        t.lexer.begin("INITIAL")
        raise SyntaxError(f"Expected /pattern/ after 'matches', got '{t.value[0]}' at position {t.lexpos}")

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.begin("INITIAL")
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
