"""Test utilities for kiri applications.

::

    from kiri.testing import TestClient
"""

from kiri.testing.client import TestClient
from kiri.testing.sse import SSETestResult, parse_sse_frames

__all__ = ["SSETestResult", "TestClient", "parse_sse_frames"]
