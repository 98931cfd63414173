"""
Paginator Module - Black Box Interface

Purpose: List tasks under bounded page sizes and stream them to a consumer
Interface: TaskPaginator, TaskStream, stream_tasks()
Hidden: Page tokens, stop conditions, producer thread, close-once handoff

Can be replaced with an async producer as long as the stream keeps its
single-writer/single-reader/close-once discipline.
"""

from .paginator import SORT_ORDERS, TaskPaginator, TaskSource, TaskStream, stream_tasks

__all__ = ["SORT_ORDERS", "TaskPaginator", "TaskSource", "TaskStream", "stream_tasks"]
