"""Payroll calculation core for an HR system."""

__version__ = "0.1.0"
