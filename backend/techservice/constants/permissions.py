"""Central enum-like definitions to avoid typos in permission strings.
Extend cautiously; never rename codes silently.
"""
from __future__ import annotations
from typing import List, Dict

SERVICES = ['TKT', 'RPT', 'ADMIN']

SERVICE_ACTIONS = {
    'TKT': ['READ', 'CREATE', 'UPDATE', 'TRANSITION', 'WIN'],
    'RPT': ['READ', 'STAFF'],
    'ADMIN': ['DEVICE.MANAGE', 'STAFF.MANAGE', 'WON.HIDE'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            codes.append(f"{svc}.{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

# Marking a ticket won attributes revenue to the acting technician, so only staff hold TKT.WIN.
ROLE_PRESETS: Dict[str, List[str]] = {
    'admin': [c for c in ALL_PERMISSION_CODES if c not in ('TKT.WIN',)],
    'staff': ['TKT.READ', 'TKT.CREATE', 'TKT.UPDATE', 'TKT.TRANSITION', 'TKT.WIN', 'RPT.STAFF'],
}


def permissions_for(user_type: str) -> List[str]:
    return sorted(ROLE_PRESETS.get(user_type, []))


__all__ = ['SERVICES', 'SERVICE_ACTIONS', 'ALL_PERMISSION_CODES', 'ROLE_PRESETS', 'permissions_for', 'build_all_permission_codes']
