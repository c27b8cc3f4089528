"""
keepAD Directory Module
=======================

LDAP access to Active Directory (using ldap3).

Design Philosophy:
- One client per run, shared by nothing else
- Queries return typed records from keepad.model
- Mutations raise DirectoryError so each item fails on its own
"""

from .client import DirectoryClient
