"""
Expression rewriting core: tokenizer, parser, rule catalog, path
addressing and subexpression extraction.
"""

from .extractor import Subexpression, extract_subexpressions
from .nodes import IdGenerator, Node, node_to_dict, stringify
from .parser import ParseError, parse, parse_statement
from .paths import NOT_FOUND, Arg, Content, Side, normalize_path, paths_equal, replace_at_path, resolve_path
from .rules import Rule, RuleApplicationError, RuleCategory, apply_rule, get_applicable_rules
from .tokenizer import Token, TokenKind, tokenize

__all__ = [
    "Arg",
    "Content",
    "IdGenerator",
    "NOT_FOUND",
    "Node",
    "ParseError",
    "Rule",
    "RuleApplicationError",
    "RuleCategory",
    "Side",
    "Subexpression",
    "Token",
    "TokenKind",
    "apply_rule",
    "extract_subexpressions",
    "get_applicable_rules",
    "node_to_dict",
    "normalize_path",
    "parse",
    "parse_statement",
    "paths_equal",
    "replace_at_path",
    "resolve_path",
    "stringify",
    "tokenize",
]
