"""
keepAD Operations Module
========================

The administrative procedures, one module each.

Components:
- role_seizure.py: seize FSMO roles from unreachable holders
- metadata_cleanup.py: delete a dead controller's leftover objects
- bulk_users.py: create user accounts from a spreadsheet
- inactive_accounts.py: disable stale accounts and report them
- disabled_accounts.py: report the accounts that are disabled

Design Philosophy:
- Straight-line, single-threaded procedures
- Per-item failures are logged and the next item proceeds
- Destructive steps ask first unless forced
"""

from .role_seizure import RoleSeizure
from .metadata_cleanup import MetadataCleanup
from .bulk_users import BulkUserCreator
from .inactive_accounts import InactiveAccountSweep
from .disabled_accounts import DisabledAccountReport
