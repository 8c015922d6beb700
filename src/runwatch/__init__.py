"""Test execution orchestration with live progress broadcasting."""

__version__ = "0.1.0"
