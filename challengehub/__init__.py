"""
ChallengeHub Backend — Application Package Initializer
=======================================================

Challenge/solution platform: companies post challenges, students submit
solutions, architects claim and review them, companies select winners.

Layers:

    ┌─────────────────────────────────────┐
    │     Routes + Dependencies (HTTP)    │  ← identity, role gate, envelopes
    ├─────────────────────────────────────┤
    │  Services (Solution Lifecycle)      │  ← state machine, ownership rules
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
