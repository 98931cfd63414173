"""
Client Module - Black Box Interface

Purpose: Talk to the Mesos master and agents over HTTP
Interface: master_endpoint(), redirect_endpoint(), OperatorClient
Hidden: Endpoint paths, query parameters, transport error mapping

Can be replaced with a client for the v1 operator API without affecting callers.
"""

from .client import AGENT_API_PATH, OperatorClient, master_endpoint, redirect_endpoint

__all__ = ["AGENT_API_PATH", "OperatorClient", "master_endpoint", "redirect_endpoint"]
