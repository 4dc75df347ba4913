"""
Project Tracker Service

Multi-tenant project/task tracker. Authenticated users own up to four
projects; each project holds tasks that move through a three-state status
lifecycle (Pending, In Progress, Completed).

Layout:
- config.py            - settings from defaults, YAML file and environment
- errors.py            - structured error taxonomy
- models.py            - Project, Task, TaskStatus, AuthenticatedIdentity, User
- document_store.py    - JSON-file document collections
- project_store.py     - project persistence with per-owner quota guard
- task_store.py        - task persistence scoped by project
- lifecycle_service.py - project/task lifecycle operations
- identity.py          - signup, login and bearer session resolution
- api.py               - FastAPI routers and error translation
- main.py              - application factory and health endpoints
"""

__version__ = "1.0.0"

SERVICE_NAME = "Project Tracker"
