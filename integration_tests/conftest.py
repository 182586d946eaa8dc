"""Pytest configuration for integration tests.

Integration tests talk to real external services (Redis) and are skipped
unless the corresponding URL is set, e.g. REDIS_URL_TEST=redis://localhost:6379/15.
"""

import warnings

warnings.filterwarnings("ignore", category=DeprecationWarning, module="fancall.shared.*")
