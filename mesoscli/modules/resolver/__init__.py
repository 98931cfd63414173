"""
Resolver Module - Black Box Interface

Purpose: Map a task to its agent and executor sandbox
Interface: find_task(), resolve_agent(), find_executor(), sandbox_directory()
Hidden: ID prefix matching, ambiguity rules, agent redirection

Agent records are fetched fresh on every resolution and never cached.
"""

from .resolver import find_executor, find_task, find_tasks, resolve_agent, sandbox_directory

__all__ = ["find_executor", "find_task", "find_tasks", "resolve_agent", "sandbox_directory"]
