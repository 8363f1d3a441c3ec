# Middleware package init
"""
ChallengeHub Backend — Middleware Package
===========================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID first, so every later log line carries the correlation id
    - Logging measures the full handler duration and the final status code
"""
