"""
Tests for the main FastAPI application endpoints.
"""

from fastapi.testclient import TestClient
from main import app

client = TestClient(app)


def test_root_endpoint():
    """Test the root endpoint returns the service banner."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Expression Rewriting API is running"
    assert data["status"] == "running"
    assert data["version"] == "1.0.0"


def test_health_check_endpoint():
    """Test the health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"]["core"].startswith("OK")
    assert data["services"]["sympy"] == "OK - Test: expand 2(a + b) -> 2 * a + 2 * b"
    assert data["services"]["lxml"].startswith("OK")


def test_tokenize_endpoint():
    """Implicit multiplications show up as synthetic tokens."""
    response = client.post("/api/tokenize", json={"expression": "2a"})
    assert response.status_code == 200
    tokens = response.json()["tokens"]
    assert [t["value"] for t in tokens] == ["2", "*", "a"]
    assert tokens[1]["synthetic"] is True
    assert tokens[1]["start"] == tokens[1]["end"] == 1


def test_parse_endpoint_basic():
    """Test basic parsing functionality."""
    response = client.post("/api/parse", json={"expression": "2+3b*a"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["parsed_expression"] == "2 + 3b * a"
    assert data["variables"] == ["a", "b"]
    assert data["ast_structure"]["kind"] == "operator"


def test_parse_endpoint_mathml():
    """Test parsing with MathML output."""
    for output_format in ("mathml", "content_mathml"):
        response = client.post("/api/parse", json={"expression": "a + 1", "output_format": output_format})
        data = response.json()
        assert data["success"] is True
        assert data["parsed_expression"].startswith("<math")


def test_parse_endpoint_error_handling():
    """Test parse endpoint error handling with invalid expression."""
    response = client.post("/api/parse", json={"expression": "2 +"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["error_message"].startswith("Parsing failed")
    assert data["error_position"] == 2


def test_parse_endpoint_equation():
    response = client.post("/api/parse", json={"expression": "2x+1=5"})
    data = response.json()
    assert data["parsed_expression"] == "2x + 1 = 5"
    assert data["ast_structure"]["kind"] == "equation"


def test_subexpressions_endpoint():
    """Every node is listed with its range, path and frame level."""
    response = client.post("/api/subexpressions", json={"expression": "2(a+b)", "include_rules": True})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["expression"] == "2(a + b)"
    entries = data["subexpressions"]
    assert len(entries) == 6
    content = entries[3]
    assert content["text"] == "a + b"
    assert content["path"] == ["args", 1, "content"]
    assert (content["start"], content["end"]) == (2, 7)
    assert "commutative_add" in content["rules"]
    assert entries[4]["level"] == 0
    assert entries[0]["level"] > content["level"]


def test_subexpressions_endpoint_error_handling():
    response = client.post("/api/subexpressions", json={"expression": "(a"})
    data = response.json()
    assert data["success"] is False
    assert data["error_position"] == 0


def test_catalog_endpoint():
    response = client.get("/api/catalog")
    assert response.status_code == 200
    data = response.json()
    assert len(data["categories"]) == 6
    ids = [rule["id"] for rule in data["rules"]]
    assert "eval_add_{i}" in ids
    assert "distributive_forward" in ids


def test_local_rules_endpoint():
    """Only the local catalog is consulted."""
    response = client.post("/api/rules", json={"expression": "2 + 3", "path": []})
    assert response.status_code == 200
    options = response.json()["options"]
    assert options[0]["id"] == "eval_add_0"
    assert options[0]["preview"] == "5"
    assert {option["source"] for option in options} == {"local"}


def test_rewrite_options_endpoint():
    """Local rules and backend operations are combined."""
    response = client.post("/rewriteOptions", json={"expression": "(x + 1)(x + 1)", "path": []})
    assert response.status_code == 200
    options = {option["id"]: option for option in response.json()["options"]}
    assert options["distributive_forward"]["source"] == "local"
    assert options["sympy:expand"]["source"] == "sympy"
    assert options["sympy:expand"]["preview"] == "x * x + 2 * x + 1"


def test_rewrite_options_for_stale_path():
    response = client.post("/rewriteOptions", json={"expression": "a + b", "path": ["args", 4]})
    assert response.status_code == 200
    assert response.json()["options"] == []


def test_rewrite_options_invalid_path():
    response = client.post("/rewriteOptions", json={"expression": "a + b", "path": ["args"]})
    assert response.status_code == 400


def test_apply_endpoint():
    """Test one rewrite step and the re-resolved selection."""
    request_data = {"expression": "2 + 3 * 4", "path": ["args", 1], "operation_id": "eval_mul_0"}
    response = client.post("/api/apply", json=request_data)
    assert response.status_code == 200
    data = response.json()
    assert data["expression"] == "2 + 12"
    assert data["path"] == ["args", 1]
    assert data["ast_structure"]["children"][1]["value"] == 12
    assert data["presentation_mathml"].startswith("<math")


def test_apply_endpoint_error_handling():
    """Inapplicable rules and unparsable input are client errors."""
    response = client.post("/api/apply", json={"expression": "a + b", "path": [], "operation_id": "eval_mul_0"})
    assert response.status_code == 409
    response = client.post("/api/apply", json={"expression": "a +", "path": [], "operation_id": "add_zero"})
    assert response.status_code == 400


def test_transform_endpoint():
    """Backend transforms can be named without their prefix."""
    request_data = {"expression": "(x + 1)(x + 1)", "path": [], "operation_id": "expand"}
    response = client.post("/api/transform", json=request_data)
    assert response.status_code == 200
    assert response.json()["expression"] == "x * x + 2 * x + 1"


def test_resolve_endpoint():
    response = client.post("/api/resolve", json={"expression": "2(a + b)", "path": ["args", 1]})
    assert response.status_code == 200
    data = response.json()
    assert data["found"] is True
    assert data["path"] == ["args", 1, "content"]
    assert data["text"] == "a + b"
    assert (data["start"], data["end"]) == (2, 7)
    assert data["kind"] == "operator"

    response = client.post("/api/resolve", json={"expression": "2(a + b)", "path": ["args", 9]})
    assert response.json()["found"] is False


def test_select_endpoint():
    response = client.post("/api/select", json={"expression": "2(a + b)", "start": 6, "end": 7})
    assert response.status_code == 200
    data = response.json()
    assert data["found"] is True
    assert data["text"] == "b"
    assert data["path"] == ["args", 1, "content", "args", 1]


def test_select_endpoint_at_caret():
    """Without an end offset the innermost node under the caret is chosen."""
    response = client.post("/api/select", json={"expression": "2(a + b)", "start": 2})
    assert response.status_code == 200
    data = response.json()
    assert data["text"] == "a"
    assert data["path"] == ["args", 1, "content", "args", 0]
