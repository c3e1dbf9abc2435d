"""Unit tests for ESGTrack web route modules.

Testing pattern:
    - Use FastAPI's TestClient for route testing
    - Patch ``get_session`` and ``build_service`` in the route module
    - Test actor requirements and error envelopes
"""
