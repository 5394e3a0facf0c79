from __future__ import annotations

import os
import sys


SAMPLE_SURVEY = """Tash-Murkon Prime II - Moon 1
    Glossy Sylvite    0.40    45491    30002510    40159441    40159446
    Bitumens    0.35    45492    30002510    40159441    40159446
    Scordite    0.25    1228    30002510    40159441    40159446
"""


def main() -> int:
    repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    src = os.path.join(repo_root, "src")
    if src not in sys.path:
        sys.path.insert(0, src)

    from flask_app.app import create_app  # noqa: WPS433
    from flask_app.bootstrap import initialize_application  # noqa: WPS433
    from flask_app.state import AppState  # noqa: WPS433

    state = AppState()
    app = create_app(state)
    client = app.test_client()

    # 1) Health should always respond.
    resp = client.get("/health")
    print("GET /health (not ready):", resp.status_code, resp.get_json(silent=True))

    # 2) Load bundled data only; prices are fetched lazily by /analyze.
    initialize_application(state, warm_prices=False)
    print("Initialization:", state.init_state, state.init_error or "")

    r = client.post("/sites", json={"text": SAMPLE_SURVEY})
    print("POST /sites:", r.status_code, r.get_json(silent=True))

    for path in ["/health", "/sites", "/materials", "/inventory"]:
        r = client.get(path)
        print(f"GET {path}:", r.status_code, r.get_json(silent=True))

    if os.getenv("SMOKE_ANALYZE", "0") in {"1", "true", "yes"}:
        r = client.post("/analyze", json={"sort": "margin", "only_profitable": True})
        payload = r.get_json(silent=True) or {}
        data = payload.get("data") or []
        preview = data[0] if data else None
        print("POST /analyze:", r.status_code, f"items={len(data)}", f"first={preview}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
