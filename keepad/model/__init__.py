"""
keepAD Model Module
===================

Typed records passed between the directory client and the procedures.

Key Components:
- schemas.py: FSMO roles, role holders, directory objects, user rows,
  account records and per-item results
"""

from .schemas import (
    FSMORole,
    RoleScope,
    RoleHolder,
    ObjectCategory,
    DirectoryObject,
    UserRow,
    AccountRecord,
    ItemResult
)
