"""CSV exports of generated payroll."""

from .bank_payroll_csv import bank_payroll_frame, export_bank_payroll
from .payroll_register_csv import export_payroll_register, payroll_register_frame

__all__ = [
    "bank_payroll_frame",
    "export_bank_payroll",
    "export_payroll_register",
    "payroll_register_frame",
]
