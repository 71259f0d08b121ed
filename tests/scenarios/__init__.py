"""End-to-end scenario tests.

Each module drives a FastAPI application wrapped in the replay middleware
through TestClient and checks what a client observes:

1. Hashing mode replay and TTL expiry
2. Direct key mode and response status exclusion
3. Failing open on store, codec and session errors
"""
