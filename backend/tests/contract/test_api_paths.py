from main import app

# === API 路径一致性测试 ===

EXPECTED_ROUTES = {
    ("GET", "/api/v1/papers"),
    ("POST", "/api/v1/papers"),
    ("GET", "/api/v1/papers/{paper_id}"),
    ("PUT", "/api/v1/papers/{paper_id}"),
    ("DELETE", "/api/v1/papers/{paper_id}"),
    ("POST", "/api/v1/papers/{paper_id}/recommend"),
    ("PUT", "/api/v1/papers/{paper_id}/details"),
    ("GET", "/api/v1/reviews"),
    ("POST", "/api/v1/reviews"),
    ("GET", "/api/v1/notifications"),
    ("POST", "/api/v1/notifications"),
    ("PUT", "/api/v1/notifications/{id}/read"),
    ("GET", "/api/v1/users/admin"),
    ("GET", "/api/v1/health"),
}


def _registered_routes() -> set[tuple[str, str]]:
    out: set[tuple[str, str]] = set()
    for route in app.routes:
        methods = getattr(route, "methods", None) or set()
        for method in methods:
            out.add((method, route.path))
    return out


def test_expected_routes_are_registered():
    missing = EXPECTED_ROUTES - _registered_routes()
    assert not missing, f"Missing routes: {sorted(missing)}"
