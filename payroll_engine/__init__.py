"""Payroll computation engine."""
