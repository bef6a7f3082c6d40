#!/usr/bin/env python3
"""
Smoke E2E test: widget lifecycle against a running API on a clean database.

No review ingestion is needed: the widget is published with an empty
location, so the payload has no reviews but must still be served.

Env vars:
  BASE_URL       (default http://localhost:8000)
"""
from __future__ import annotations

import json
import os
import sys
import time
from urllib.request import Request, urlopen
from urllib.error import HTTPError, URLError

BASE_URL = os.environ.get("BASE_URL", "http://localhost:8000").rstrip("/")

SMOKE_TAG = f"smoke_{int(time.time())}"

# ── Helpers ──────────────────────────────────────────────────

class SmokeError(Exception):
    pass


def _req(method: str, path: str, body: dict | None = None, expect: int = 200) -> dict:
    url = f"{BASE_URL}{path}"
    data = json.dumps(body).encode() if body is not None else None
    req = Request(url, data=data, headers={"Content-Type": "application/json"}, method=method)
    try:
        with urlopen(req, timeout=30) as resp:
            if resp.status != expect and not (expect == 200 and 200 <= resp.status < 300):
                raise SmokeError(f"{method} {path} → {resp.status}, expected {expect}")
            raw = resp.read().decode()
            return json.loads(raw) if raw else {}
    except HTTPError as e:
        raw = e.read().decode()[:500]
        if e.code == expect:
            return json.loads(raw) if raw else {}
        raise SmokeError(f"{method} {path} → {e.code}: {raw}")
    except URLError as e:
        raise SmokeError(f"{method} {path} → URLError: {e}")


def GET(path: str, expect: int = 200) -> dict:
    return _req("GET", path, expect=expect)


def POST(path: str, body: dict | None = None, expect: int = 200) -> dict:
    return _req("POST", path, body, expect=expect)


def step(name: str):
    print(f"\n{'='*60}")
    print(f"  STEP: {name}")
    print(f"{'='*60}")


def ok(msg: str):
    print(f"  ✅ {msg}")


def fail(msg: str):
    print(f"  ❌ {msg}")
    raise SmokeError(msg)


# ── Steps ────────────────────────────────────────────────────

def step1_health():
    step("1. Health check")
    if GET("/ping").get("status") != "ok":
        fail("ping did not return ok")
    ok("API is up")


def step2_create_widget() -> int:
    step("2. Create widget from badge template")
    widget = POST("/api/widgets", {"company_id": SMOKE_TAG, "name": f"SMOKE {SMOKE_TAG}", "template": "badge"}, expect=201)
    if widget["type"] != "badge" or widget["status"] != "DRAFT":
        fail(f"unexpected widget: type={widget['type']} status={widget['status']}")
    ok(f"Widget #{widget['id']} created as DRAFT badge")
    return widget["id"]


def step3_add_location(widget_id: int):
    step("3. Link a review source location")
    location = POST(f"/api/widgets/{widget_id}/locations", {"place_id": f"{SMOKE_TAG}-place"}, expect=201)
    ok(f"Location #{location['id']} linked")
    POST(f"/api/widgets/{widget_id}/locations", {"place_id": f"{SMOKE_TAG}-place"}, expect=409)
    ok("Duplicate place rejected with 409")


def step4_draft_is_hidden(widget_id: int):
    step("4. Draft payload is not served")
    draft = GET(f"/api/widgets/{widget_id}/payload", expect=404)
    missing = GET("/api/widgets/999999999/payload", expect=404)
    if draft != missing:
        fail(f"draft and missing differ: {draft} vs {missing}")
    ok("Draft and missing widgets return the same 404 body")


def step5_publish_and_fetch(widget_id: int):
    step("5. Publish and fetch payload")
    widget = POST(f"/api/widgets/{widget_id}/publish")
    first_published_at = widget["published_at"]
    POST(f"/api/widgets/{widget_id}/summary/refresh")
    payload = GET(f"/api/widgets/{widget_id}/payload")
    if set(payload) != {"config", "summary", "reviews"}:
        fail(f"unexpected payload keys: {sorted(payload)}")
    if payload["summary"]["totalReviews"] != 0:
        fail(f"expected empty summary, got {payload['summary']}")
    ok(f"Payload served ({len(payload['reviews'])} reviews, layout={payload['config']['layout']['type']})")

    POST(f"/api/widgets/{widget_id}/unpublish")
    GET(f"/api/widgets/{widget_id}/payload", expect=404)
    widget = POST(f"/api/widgets/{widget_id}/publish")
    if widget["published_at"] != first_published_at:
        fail("published_at changed on re-publish")
    ok("Unpublish hides payload; re-publish keeps published_at")


def step6_cleanup(widget_id: int):
    step("6. Cleanup")
    _req("DELETE", f"/api/widgets/{widget_id}", expect=204)
    GET(f"/api/widgets/{widget_id}", expect=404)
    ok(f"Widget #{widget_id} deleted")


def main():
    print(f"\n🔬 Widget smoke test: {BASE_URL}\n")

    try:
        step1_health()
        widget_id = step2_create_widget()
        step3_add_location(widget_id)
        step4_draft_is_hidden(widget_id)
        step5_publish_and_fetch(widget_id)
        step6_cleanup(widget_id)
        print(f"\n  ✅ PASS\n")

    except SmokeError as e:
        print(f"\n{'='*60}")
        print(f"  ❌ FAIL: {e}")
        print(f"{'='*60}\n")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\n  ⏹ Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
