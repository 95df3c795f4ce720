"""
API schema definitions for the Expression Rewriting API.
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Union
from enum import Enum

PathItem = Union[int, str]


class OutputFormat(str, Enum):
    """Supported output formats for parsed expressions."""
    PLAIN_TEXT = "plain_text"
    MATHML = "mathml"
    CONTENT_MATHML = "content_mathml"


class ExpressionRequest(BaseModel):
    """Request carrying only an expression."""
    expression: str = Field(..., description="Arithmetic expression, e.g. '2a + 3(b - 1)'")


class TokenModel(BaseModel):
    kind: str
    value: str
    start: int
    end: int
    synthetic: bool = False


class TokenizeResponse(BaseModel):
    """Response model for tokenization."""
    tokens: List[TokenModel] = Field(default=[], description="Tokens including implicit multiplications")


class ParseRequest(BaseModel):
    """Request model for parsing expressions."""
    expression: str = Field(..., description="Expression or statement to parse")
    output_format: OutputFormat = Field(
        default=OutputFormat.PLAIN_TEXT,
        description="Desired output format"
    )


class ParseResponse(BaseModel):
    """Response model for expression parsing."""
    success: bool = Field(..., description="Whether parsing was successful")
    parsed_expression: Optional[str] = Field(
        None, description="Canonical expression in the requested format"
    )
    ast_structure: Optional[Dict] = Field(
        None, description="Abstract syntax tree representation"
    )
    variables: List[str] = Field(
        default=[], description="Variables found in the expression"
    )
    error_message: Optional[str] = Field(
        None, description="Error message if parsing failed"
    )
    error_position: Optional[int] = Field(
        None, description="Offset of the parse error in the whitespace-free text"
    )


class SubexpressionsRequest(BaseModel):
    expression: str = Field(..., description="Expression to analyse")
    include_rules: bool = Field(
        default=False, description="Attach the ids of the rules applicable to each node"
    )


class SubexpressionModel(BaseModel):
    """One selectable subexpression of the canonical text."""
    text: str
    start: int
    end: int
    path: List[PathItem]
    kind: str
    level: int = Field(..., description="Frame level; overlapping frames never share a level")
    rules: List[str] = []


class SubexpressionsResponse(BaseModel):
    success: bool
    expression: Optional[str] = Field(None, description="Canonical expression the offsets refer to")
    subexpressions: List[SubexpressionModel] = []
    error_message: Optional[str] = None
    error_position: Optional[int] = None


class SelectionRequest(BaseModel):
    """An expression plus the path of the selected node."""
    expression: str = Field(..., description="Expression text")
    path: List[PathItem] = Field(
        default=[], description="Path of the selected node, e.g. [\"args\", 1, \"content\"]"
    )


class RangeRequest(BaseModel):
    expression: str
    start: int = Field(..., ge=0, description="Start offset in the canonical expression")
    end: Optional[int] = Field(
        None, ge=0, description="End offset in the canonical expression; omit to select at the caret"
    )


class RewriteOption(BaseModel):
    id: str
    name: str
    category: str
    preview: str = Field(..., description="Full expression after the rewrite")
    replacement: str = Field(..., description="Selected node after the rewrite")
    path: List[PathItem]
    source: str = "local"


class RewriteOptionsResponse(BaseModel):
    options: List[RewriteOption]


class ApplyRequest(SelectionRequest):
    operation_id: str = Field(..., description="Id of a rule or backend operation")


class ApplyResponse(BaseModel):
    """Result of one rewrite step."""
    expression: str = Field(..., description="Re-parsed canonical expression")
    path: Optional[List[PathItem]] = Field(
        None, description="Selection re-resolved on the new tree, null if it no longer exists"
    )
    ast_structure: Dict
    presentation_mathml: str


class ResolveResponse(BaseModel):
    found: bool
    path: Optional[List[PathItem]] = Field(None, description="Normalized path")
    text: Optional[str] = None
    start: Optional[int] = None
    end: Optional[int] = None
    kind: Optional[str] = None


class CatalogEntry(BaseModel):
    id: str
    name: str
    category: str
    preview: str


class CatalogResponse(BaseModel):
    categories: List[str]
    rules: List[CatalogEntry]
