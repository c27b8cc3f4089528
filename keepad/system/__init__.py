"""
keepAD System Module
====================

Wrappers around external executables.

Components:
- probe.py: ping-based reachability check
- ntdsutil.py: FSMO role seizure through ntdsutil
"""

from .probe import is_reachable
from .ntdsutil import NtdsutilRunner, build_seize_script
