"""
Main FastAPI application for the Expression Rewriting API.
"""

import logging
from typing import Dict, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from lxml import etree

from expression_core import engine
from expression_core.backend import OPERATION_PREFIX, SympyBackend
from expression_core.extractor import assign_levels
from expression_core.mathml import to_content_mathml, to_presentation_mathml
from expression_core.nodes import Atom, iter_nodes, node_to_dict, stringify
from expression_core.parser import ParseError, parse_statement
from expression_core.paths import Path, path_from_list, path_to_list
from expression_core.rules import RuleApplicationError, catalog_summary
from expression_core.tokenizer import process
from schemas import (
    ApplyRequest, ApplyResponse,
    CatalogEntry, CatalogResponse,
    ExpressionRequest, OutputFormat,
    ParseRequest, ParseResponse,
    RangeRequest, ResolveResponse,
    RewriteOption, RewriteOptionsResponse,
    SelectionRequest,
    SubexpressionModel, SubexpressionsRequest, SubexpressionsResponse,
    TokenModel, TokenizeResponse,
)

log = logging.getLogger(__name__)

API_TITLE = "Expression Rewriting API"
API_VERSION = "1.0.0"

BACKEND = SympyBackend()

app = FastAPI(
    title=API_TITLE,
    description="Step-by-step arithmetic expression rewriting backend",
    version=API_VERSION,
)

# Configure CORS for frontend communication
app.add_middleware(
    CORSMiddleware,
    # Allow common local dev origins (localhost/127.0.0.1 on any port)
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str
    message: str
    services: Dict[str, str]


def _path(items) -> Path:
    try:
        return path_from_list(items)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid path: {e}")


def _parse_error(e: ParseError) -> HTTPException:
    return HTTPException(status_code=400, detail=f"Parsing failed: {e}")


def _options(expression: str, path: Path, use_backend: bool) -> RewriteOptionsResponse:
    try:
        operations = engine.list_operations(expression, path, BACKEND if use_backend else None)
    except ParseError as e:
        raise _parse_error(e)
    return RewriteOptionsResponse(options=[
        RewriteOption(
            id=op.id,
            name=op.name,
            category=op.category,
            preview=op.preview,
            replacement=op.replacement,
            path=path_to_list(op.path),
            source=op.source,
        )
        for op in operations
    ])


def _apply(expression: str, path: Path, operation_id: str) -> ApplyResponse:
    try:
        result = engine.apply_operation(expression, path, operation_id, BACKEND)
    except ParseError as e:
        raise _parse_error(e)
    except RuleApplicationError as e:
        log.warning("rewrite rejected: %s", e)
        raise HTTPException(status_code=409, detail=str(e))
    return ApplyResponse(
        expression=result.expression,
        path=path_to_list(result.path) if result.path is not None else None,
        ast_structure=node_to_dict(result.tree),
        presentation_mathml=to_presentation_mathml(result.tree),
    )


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint returning service information."""
    return {
        "message": f"{API_TITLE} is running",
        "status": "running",
        "version": API_VERSION
    }


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint with service status."""
    try:
        tree = parse_statement("2(a + b)")
        core_status = f"OK - Test: 2(a + b) -> {stringify(tree)}"
    except Exception as e:
        core_status = f"ERROR - {str(e)}"

    # Test SymPy functionality
    try:
        expanded = BACKEND.apply("2(a + b)", (), OPERATION_PREFIX + "expand")
        sympy_status = f"OK - Test: expand 2(a + b) -> {stringify(expanded)}"
    except Exception as e:
        sympy_status = f"ERROR - {str(e)}"

    # Test lxml functionality
    try:
        root = etree.Element("math")
        etree.SubElement(root, "mi").text = "x"
        lxml_status = "OK - MathML processing available"
    except Exception as e:
        lxml_status = f"ERROR - {str(e)}"

    return HealthResponse(
        status="healthy",
        message=f"{API_TITLE} is running",
        services={
            "fastapi": "OK",
            "core": core_status,
            "sympy": sympy_status,
            "lxml": lxml_status
        }
    )


@app.post("/api/tokenize", response_model=TokenizeResponse)
async def tokenize_expression(request: ExpressionRequest) -> TokenizeResponse:
    """Tokens of an expression, including inserted implicit multiplications."""
    return TokenizeResponse(tokens=[
        TokenModel(kind=t.kind.value, value=t.value, start=t.start, end=t.end, synthetic=t.synthetic)
        for t in process(request.expression)
    ])


@app.post("/api/parse", response_model=ParseResponse)
async def parse_expression(request: ParseRequest) -> ParseResponse:
    """Parse an expression and return its canonical form and tree."""
    try:
        tree = parse_statement(request.expression)
    except ParseError as e:
        return ParseResponse(
            success=False,
            error_message=f"Parsing failed: {e.message}",
            error_position=e.position,
        )

    if request.output_format == OutputFormat.MATHML:
        parsed_expr = to_presentation_mathml(tree)
    elif request.output_format == OutputFormat.CONTENT_MATHML:
        parsed_expr = to_content_mathml(tree)
    else:
        parsed_expr = stringify(tree)

    variables = sorted({n.name for n in iter_nodes(tree) if isinstance(n, Atom)})
    return ParseResponse(
        success=True,
        parsed_expression=parsed_expr,
        ast_structure=node_to_dict(tree),
        variables=variables,
    )


@app.post("/api/subexpressions", response_model=SubexpressionsResponse)
async def list_subexpressions(request: SubexpressionsRequest) -> SubexpressionsResponse:
    """Selectable subexpressions with their text ranges and paths."""
    try:
        entries = engine.subexpressions(request.expression, include_rules=request.include_rules)
    except ParseError as e:
        return SubexpressionsResponse(
            success=False,
            error_message=f"Parsing failed: {e.message}",
            error_position=e.position,
        )

    levels = {}
    for level, frames in enumerate(assign_levels(entries)):
        for entry in frames:
            levels[id(entry)] = level

    items: List[SubexpressionModel] = [
        SubexpressionModel(
            text=entry.text,
            start=entry.start,
            end=entry.end,
            path=path_to_list(entry.path),
            kind=entry.node.kind,
            level=levels[id(entry)],
            rules=[rule.id for rule in entry.rules],
        )
        for entry in entries
    ]
    return SubexpressionsResponse(
        success=True,
        expression=entries[0].text if entries else None,
        subexpressions=items,
    )


@app.get("/api/catalog", response_model=CatalogResponse)
async def rule_catalog() -> CatalogResponse:
    """Every rule of the local catalog, in the order rules are offered."""
    return CatalogResponse(
        categories=engine.rule_categories(),
        rules=[CatalogEntry(**entry) for entry in catalog_summary()],
    )


@app.post("/api/rules", response_model=RewriteOptionsResponse)
async def local_rules(request: SelectionRequest) -> RewriteOptionsResponse:
    """Rules of the local catalog applicable at the selected node."""
    return _options(request.expression, _path(request.path), use_backend=False)


@app.post("/rewriteOptions", response_model=RewriteOptionsResponse)
async def rewrite_options(request: SelectionRequest) -> RewriteOptionsResponse:
    """Rewrite options for the selected node.
    Combines the local rule catalog with the SymPy backend. A path that no
    longer resolves yields no options.
    """
    return _options(request.expression, _path(request.path), use_backend=True)


@app.post("/api/apply", response_model=ApplyResponse)
async def apply_rewrite(request: ApplyRequest) -> ApplyResponse:
    """Apply a rule or backend operation at the selected node."""
    return _apply(request.expression, _path(request.path), request.operation_id)


@app.post("/api/transform", response_model=ApplyResponse)
async def apply_transform(request: ApplyRequest) -> ApplyResponse:
    """Apply a SymPy transform ('expand', 'factor', ...) at the selected node."""
    operation_id = request.operation_id
    if not operation_id.startswith(OPERATION_PREFIX):
        operation_id = OPERATION_PREFIX + operation_id
    return _apply(request.expression, _path(request.path), operation_id)


@app.post("/api/resolve", response_model=ResolveResponse)
async def resolve_selection(request: SelectionRequest) -> ResolveResponse:
    """Normalize a path and report the text range it addresses."""
    path = _path(request.path)
    try:
        entry = engine.locate(request.expression, path)
    except ParseError as e:
        raise _parse_error(e)
    if entry is None:
        return ResolveResponse(found=False)
    return ResolveResponse(
        found=True,
        path=path_to_list(entry.path),
        text=entry.text,
        start=entry.start,
        end=entry.end,
        kind=entry.node.kind,
    )


@app.post("/api/select", response_model=ResolveResponse)
async def select_range(request: RangeRequest) -> ResolveResponse:
    """Map a text range of the canonical expression to a path."""
    try:
        path = engine.path_for_range(request.expression, request.start, request.end)
    except ParseError as e:
        raise _parse_error(e)
    if path is None:
        return ResolveResponse(found=False)
    return await resolve_selection(SelectionRequest(expression=request.expression, path=path_to_list(path)))


if __name__ == "__main__":
    import sys
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(
        prog="python main.py",
        description=(
            "Run the Expression Rewriting API server.\n\n"
            "Examples:\n"
            "  python main.py serve --host 0.0.0.0 --port 8000 --reload\n"
            "  python -m uvicorn main:app --reload\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "command",
        nargs="?",
        help="Command to execute. Use 'serve' to start the API server.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Host address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Port number (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (development)")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Logging level (default: info)",
    )

    args = parser.parse_args()

    # If run with no arguments, print usage and exit without starting the server
    if args.command is None:
        print("Usage: python main.py serve [--host HOST] [--port PORT] [--reload] [--log-level LEVEL]")
        print("Alternative: python -m uvicorn main:app --host 0.0.0.0 --port 8000 --reload")
        sys.exit(0)

    if args.command in {"serve", "run", "start"}:
        logging.basicConfig(
            level=args.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        # uvicorn needs an import string to reload
        target = "main:app" if args.reload else app
        uvicorn.run(target, host=args.host, port=args.port, reload=args.reload, log_level=args.log_level)
    else:
        print(f"Unknown command: {args.command}")
        print("Use: python main.py serve [--host HOST] [--port PORT] [--reload]")
        sys.exit(1)
