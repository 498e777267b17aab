"""Test utilities for canopy sites::

    from canopy.testing import TestClient
"""

from canopy.testing.client import TestClient

__all__ = ["TestClient"]
