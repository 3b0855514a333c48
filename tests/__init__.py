"""flinkgen test suite."""
