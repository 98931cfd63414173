"""
Scheduler Module - Black Box Interface

Purpose: Launch a task on the cluster
Interface: TaskSubmitter.submit(), read_records(), offer_fits()
Hidden: Framework subscription, RecordIO decoding, offer handling, acknowledgements

Can be replaced with a long-lived scheduler without affecting the builder.
"""

from .scheduler import SCHEDULER_API_PATH, TaskSubmitter, offer_fits, read_records

__all__ = ["SCHEDULER_API_PATH", "TaskSubmitter", "offer_fits", "read_records"]
