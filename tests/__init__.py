"""Tests - Test suite and test programs."""
