# Services package init
"""
ChallengeHub Backend — Services Layer
=======================================

Service Inventory:
    - SolutionService:  solution lifecycle manager (transitions + read paths)
    - ChallengeService: challenge lookups the lifecycle depends on
    - ProfileService:   user + role → profile id

Services are stateless; routes receive fresh instances through FastAPI
dependencies and pass the request's database session into every call.
"""
