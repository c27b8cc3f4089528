"""
keepAD Reporting Module
=======================

Delimited-text reports for account procedures.

Components:
- report_builder.py: account and result reports written with pandas
"""

from .report_builder import ReportBuilder, summarize_results
