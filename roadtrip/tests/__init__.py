"""Test suites; run with pytest or `python -m roadtrip.tests.run_tests`."""
