"""Testing utilities for livetrain applications.

    from livetrain.testing import TestClient
"""

from livetrain.testing.client import TestClient

__all__ = ["TestClient"]
