"""Sliding-window delay server.

Every TCP connection receives the number of seconds the caller should wait
before hitting the rate-limited downstream service. The timing decision lives
in the domain layer; networking and startup wiring stay thin around it.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
