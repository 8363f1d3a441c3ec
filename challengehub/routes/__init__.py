# Routes package init
"""
ChallengeHub Backend — API Routes Package
===========================================

Route Inventory:
    - solutions.py: /api/solutions/...   (solution lifecycle)
    - health.py:    GET /health          (service health check)

Routes are thin: resolve the caller, parse ids, call SolutionService,
wrap the result in an envelope.
"""
