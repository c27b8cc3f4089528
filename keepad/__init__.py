"""
keepAD - Active Directory Maintenance Toolkit
=============================================

Independent procedures for routine and disaster-recovery maintenance of an
Active Directory forest.

Architecture Overview:
----------------------
- directory/: ldap3-based client for role, object and account queries
- system/: wrappers around ping and ntdsutil
- operations/: the procedures (role seizure, metadata cleanup, bulk user
  creation, inactive-account sweep, disabled-account report)
- reporting/: delimited-text reports
- model/: typed records passed between the layers

Design Decisions:
-----------------
1. Each procedure is a straight-line, single-threaded run
2. Every directory mutation fails on its own; the run continues
3. Destructive steps ask for confirmation unless forced
"""

__version__ = "1.0.0"

from .config import KeepadConfig
