"""
Weather Obs Tests Module - Initialization
=========================================

Unit and integration tests for observation scheduling and telemetry delivery.

Test Organization:
------------------
1. test_scheduler.py  - ObservationScheduler time guards, due handling, fault isolation
2. test_sensors.py    - Sensor contract, cadence, deterministic noise, surface stations
3. test_records.py    - Collector session parsing and observation records
4. test_sink.py       - TelemetrySink handshake, batching, failure state (async)
5. test_config.py     - YAML config loading/validation and logging helpers
6. test_pipeline.py   - End-to-end scheduler → serializer → sink (async)

helpers.py holds the shared doubles: scripted sensors and an in-memory
collector served through httpx.MockTransport. No test touches the network.

Example Test Run:
-----------------
>>> import unittest
>>> from tests import test_scheduler, test_sink
>>>
>>> loader = unittest.TestLoader()
>>> suite = unittest.TestSuite()
>>> suite.addTests(loader.loadTestsFromModule(test_scheduler))
>>> suite.addTests(loader.loadTestsFromModule(test_sink))
>>>
>>> runner = unittest.TextTestRunner(verbosity=2)
>>> result = runner.run(suite)

Author: Weather Obs Team
Date: October 19, 2026
"""

import unittest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Import test modules
from . import test_scheduler
from . import test_sensors
from . import test_records
from . import test_sink
from . import test_config
from . import test_pipeline

__all__ = [
    "test_scheduler",
    "test_sensors",
    "test_records",
    "test_sink",
    "test_config",
    "test_pipeline",
]


def create_test_suite():
    """
    Create the full test suite.

    Returns:
        unittest.TestSuite with all tests
    """
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for module in (test_scheduler, test_sensors, test_records,
                   test_sink, test_config, test_pipeline):
        suite.addTests(loader.loadTestsFromModule(module))

    return suite


def run_tests(verbosity: int = 2):
    """
    Run all tests.

    Args:
        verbosity: Output verbosity level

    Returns:
        unittest.TestResult
    """
    suite = create_test_suite()
    runner = unittest.TextTestRunner(verbosity=verbosity)
    return runner.run(suite)


if __name__ == "__main__":
    result = run_tests()
    sys.exit(0 if result.wasSuccessful() else 1)
