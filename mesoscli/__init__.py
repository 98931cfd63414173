"""
mesoscli - Mesos Operator Command Line Client

A client for discovering, inspecting and launching tasks on an
Apache Mesos cluster through its HTTP APIs.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- api: Task, agent and executor records and the task-info wire schema
- client: Endpoint resolution and the control-plane HTTP client
- filter: Composable task predicates
- paginator: Paginated task listing and streaming
- resolver: Agent and executor sandbox resolution
- builder: Task specification construction
- scheduler: Task submission through the scheduler API
- local: Single-node local cluster bootstrap
"""

__version__ = "1.0.0"
