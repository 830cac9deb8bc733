"""
Effective Group Membership Resolver
===================================
Resolves the transitive (effective) membership of an Entra ID / Microsoft 365
group through Microsoft Graph: every nested group is walked depth-first and
every unique user reachable through any membership path is collected.

WARNING: This tool operates in STRICT READ-ONLY mode.
         No group memberships are ever modified.
"""

__version__ = "1.0.0"
__author__ = "Effective Membership Resolver"
__mode__ = "READ-ONLY"
