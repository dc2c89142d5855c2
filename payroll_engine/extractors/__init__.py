"""Readers for uploaded attendance files."""

from .punch_sheet import PunchSheetError, PunchSheetResult, parse_punch_sheet

__all__ = ["PunchSheetError", "PunchSheetResult", "parse_punch_sheet"]
